import enum


class Destination(str, enum.Enum):
    """Where transformed documents are written"""
    PRIMARY_STORE = "primary-store"
    EMULATED_STORE = "emulated-store"
    LOCAL_FILESYSTEM = "local-filesystem"


class ProcessingStatus(str, enum.Enum):
    """Progress event status"""
    STARTED = "started"
    EXTRACTING = "extracting"
    TRANSFORMING = "transforming"
    LOADING = "loading"
    DONE = "done"
    ERROR = "error"
    CANCELLED = "cancelled"


class ProcessorState(str, enum.Enum):
    """Lifecycle state of an ETL processor"""
    CREATED = "created"
    VALIDATING = "validating"
    EXTRACTING = "extracting"
    TRANSFORMING = "transforming"
    LOADING = "loading"
    FINISHED = "finished"
    ERROR = "error"


class RunStatus(str, enum.Enum):
    """Final status of a run"""
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class OperationKind(str, enum.Enum):
    """Pending write kind"""
    SET = "set"
    UPDATE = "update"
    DELETE = "delete"
