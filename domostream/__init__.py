from .core import *  # noqa: F403

__version__ = "0.3.0"

__all__ = [
    "AuthenticationError",
    "BatchUploadReport",
    "ClientCredentialsTokenProvider",
    "ConfigError",
    "ConfigManager",
    "DomoHTTPError",
    "DomoStreamError",
    "NoActiveExecutionError",
    "SerializationError",
    "StaticTokenProvider",
    "StreamExecution",
    "StreamTransport",
    "StreamUploadClient",
    "StreamUploadConfig",
    "TokenProvider",
    "TransportError",
    "UploadCoordinator",
    "upload_batches",
]
