"""Exceptions raised by the service layer and the remote fetcher."""


class CarMarketError(Exception):
    pass


class AuthError(CarMarketError):
    pass


class DuplicateEmailError(CarMarketError):
    pass


class NotFoundError(CarMarketError):
    pass


class StorageError(CarMarketError):
    """A write that could not be persisted in any store."""


class RemoteFetchError(CarMarketError):
    pass
