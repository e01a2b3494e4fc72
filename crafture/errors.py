class CraftureError(Exception):
    """Base exception for the crafture backend"""
    pass

class ValidationError(CraftureError):
    """Raised when a request or store call is missing required fields"""
    pass

class ConfigurationError(CraftureError):
    """Raised when a required secret or setting is not configured"""
    pass

class FetchError(CraftureError):
    """Raised when a reference image cannot be downloaded"""
    pass

class DecodeError(CraftureError):
    """Raised when a downloaded body is not a decodable image"""
    pass

class GenerationError(CraftureError):
    """Raised when the AI provider call fails"""
    pass

class StorageError(CraftureError):
    """Raised when a Filecoin upload or download fails"""
    pass

class PersistenceError(CraftureError):
    """Raised when the history datastore fails"""

    def __init__(self, message: str, details: str = None):
        super().__init__(message)
        self.details = details

class TransactionError(CraftureError):
    """Raised when an on-chain payment transaction does not succeed"""

    def __init__(self, message: str, tx_hash: str = None):
        super().__init__(message)
        self.tx_hash = tx_hash

class InsufficientFundsError(TransactionError):
    """Raised when the wallet cannot cover the payment deposit"""
    pass
