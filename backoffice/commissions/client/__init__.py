from .phorest_client import PhorestClient
from .exceptions import PhorestError, AuthenticationError, NetworkError, APIError

__all__ = ['PhorestClient', 'PhorestError', 'AuthenticationError', 'NetworkError', 'APIError']
