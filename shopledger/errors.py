class LedgerServiceError(Exception):
    pass


class LedgerNotFoundError(LedgerServiceError):
    pass


class LedgerLoadError(LedgerServiceError):
    """Raw shopkeepers or receipts could not be fetched; the store is unchanged."""


class ServiceNotRunningError(LedgerServiceError):
    pass
