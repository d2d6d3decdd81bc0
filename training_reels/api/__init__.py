"""REST client for the training reels backend."""

from .client import ApiClient, ApiError, AuthenticationError
from .reels import ReelsApi
from .transcoding import TranscodingApi
from .uploads import UploadApi

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthenticationError",
    "ReelsApi",
    "TranscodingApi",
    "UploadApi",
]
