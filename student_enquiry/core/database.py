import logging
import os

from student_enquiry.core.config import settings
from student_enquiry.core.store import FirestoreStudentStore, MemoryStudentStore, StudentStore

logger = logging.getLogger(__name__)

_firebase_app = None
_store: StudentStore | None = None


def init_firebase():
    global _firebase_app
    if _firebase_app is not None:
        return _firebase_app
    import firebase_admin
    from firebase_admin import credentials as fb_credentials

    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    cred_path = settings.FIREBASE_CREDENTIALS_PATH
    if os.path.exists(cred_path):
        cred = fb_credentials.Certificate(cred_path)
        _firebase_app = firebase_admin.initialize_app(cred, options)
    else:
        # Try default credentials
        logger.warning(f"Firebase credentials not found at {cred_path}, using application default credentials")
        _firebase_app = firebase_admin.initialize_app(options=options)
    return _firebase_app


def get_store() -> StudentStore:
    global _store
    if _store is None:
        if settings.STORE_BACKEND == "memory":
            logger.info("Using in-memory student store")
            _store = MemoryStudentStore()
        else:
            from firebase_admin import firestore

            _store = FirestoreStudentStore(
                firestore.client(init_firebase()),
                students_collection=settings.STUDENTS_COLLECTION,
                counters_collection=settings.COUNTERS_COLLECTION,
                register_numbers_collection=settings.REGISTER_NUMBERS_COLLECTION,
                max_attempts=settings.TRANSACTION_MAX_ATTEMPTS,
            )
            logger.info(f"Using Firestore student store (collection '{settings.STUDENTS_COLLECTION}')")
    return _store
