from pathlib import Path
import sys

if __package__ is None or __package__ == "":
    sys.path.append(str(Path(__file__).resolve().parents[1]))

from housepoints.db.session import session_scope
from housepoints.services.seed import seed_school


def main() -> None:
    with session_scope() as db:
        inserted = seed_school(db)
    summary = ", ".join(f"{name}={count}" for name, count in inserted.items())
    print(f"Inserted: {summary}")


if __name__ == "__main__":
    main()
