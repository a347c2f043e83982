import logging

from core.config import Settings
from etl.loaders.stores import DocumentStore, FilesystemStore, FirestoreRestStore
from schemas.enums import Destination

logger = logging.getLogger(__name__)


def create_store(destination: Destination, settings: Settings) -> DocumentStore:
    """Build the document store for a run destination"""
    if destination == Destination.LOCAL_FILESYSTEM:
        logger.info(f"Writing documents to {settings.LOCAL_EXPORT_DIR}")
        return FilesystemStore(settings.LOCAL_EXPORT_DIR)

    if destination == Destination.EMULATED_STORE:
        logger.info(f"Using Firestore emulator at {settings.emulator_url}")
        return FirestoreRestStore(
            project_id=settings.FIRESTORE_PROJECT_ID,
            database=settings.FIRESTORE_DATABASE,
            base_url=settings.emulator_url,
            access_token="owner",
            timeout=settings.BATCH_COMMIT_TIMEOUT,
        )

    logger.info(f"Using Firestore project {settings.FIRESTORE_PROJECT_ID}")
    return FirestoreRestStore(
        project_id=settings.FIRESTORE_PROJECT_ID,
        database=settings.FIRESTORE_DATABASE,
        base_url=settings.FIRESTORE_API_URL,
        access_token=settings.FIRESTORE_ACCESS_TOKEN,
        timeout=settings.BATCH_COMMIT_TIMEOUT,
    )
