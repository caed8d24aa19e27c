class PointsError(Exception):
    """Base class for ledger mutation failures."""


class UnknownReferenceError(PointsError):
    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class PointsValidationError(PointsError):
    pass


class LedgerWriteError(PointsError):
    pass
