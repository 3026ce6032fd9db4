from .auth import ClientCredentialsTokenProvider, StaticTokenProvider, TokenProvider
from .config import ConfigManager, StreamUploadConfig
from .exceptions import (
    AuthenticationError,
    ConfigError,
    DomoHTTPError,
    DomoStreamError,
    NoActiveExecutionError,
    SerializationError,
    TransportError,
)
from .streaming.models import StreamExecution
from .streaming.stream_upload_client import (
    BatchUploadReport,
    StreamUploadClient,
    upload_batches,
)
from .streaming.transport import StreamTransport
from .streaming.upload_coordinator import UploadCoordinator
