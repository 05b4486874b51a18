"""
Student record store.

Two backends share one interface:
- FirestoreStudentStore: Firestore via firebase_admin (production)
- MemoryStudentStore: in-process dicts (local development, tests)

Registration writes the day's counter, the register number claim and
the student document in a single transaction, so a stored student always
has a token, a token is never issued without its student, and no two
students share a register number.
"""

import copy
import hashlib
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Optional

from student_enquiry.core.exceptions import (
    DuplicateKeyError,
    NotFoundError,
    StoreUnavailableError,
    TokenAssignmentError,
)
from student_enquiry.core.tokens import counter_document, next_token_number

logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class StudentStore(ABC):
    @abstractmethod
    def list_students(self) -> list[dict]:
        ...

    @abstractmethod
    def get_student(self, student_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    def find_by_register_number(self, register_number: str) -> Optional[dict]:
        ...

    @abstractmethod
    def insert_with_token(self, document: dict, token_date: str) -> dict:
        """
        Advance the day's counter and insert the student carrying that token,
        as one atomic unit. Raises DuplicateKeyError when another student
        already holds the register number. Returns the stored record
        including its id.
        """

    @abstractmethod
    def update_student(self, student_id: str, changes: dict, removed: Iterable[str] = ()) -> dict:
        """
        Merge changes, drop removed keys, bump update_count and stamp
        updated_at. A register number held by another student raises
        DuplicateKeyError and leaves the record untouched.
        """

    @abstractmethod
    def record_visit(self, student_id: str) -> dict:
        """Increment visit_count and return the record as it is after the visit."""

    @abstractmethod
    def delete_student(self, student_id: str) -> None:
        ...


# ---------------------------------------------------------------------------
# Firestore
# ---------------------------------------------------------------------------
@contextmanager
def _firestore_errors(operation: str):
    from google.api_core import exceptions as gexc

    try:
        yield
    except gexc.NotFound:
        raise NotFoundError()
    except (gexc.Aborted, gexc.Conflict) as e:
        logger.error(f"Firestore contention during {operation}: {e}")
        raise TokenAssignmentError() from e
    except (gexc.ServiceUnavailable, gexc.DeadlineExceeded, gexc.RetryError) as e:
        logger.error(f"Firestore unavailable during {operation}: {e}")
        raise StoreUnavailableError() from e


class FirestoreStudentStore(StudentStore):
    """
    Register numbers are claimed through guard documents in their own
    collection, keyed by a hash of the number. Registration, edits and
    deletes read and write the guard in the same transaction as the
    student, so two applicants can never hold the same number.
    """

    def __init__(
        self,
        client,
        students_collection: str = "students",
        counters_collection: str = "daily_counters",
        register_numbers_collection: str = "register_numbers",
        max_attempts: int = 5,
    ):
        self.client = client
        self.students_collection = students_collection
        self.counters_collection = counters_collection
        self.register_numbers_collection = register_numbers_collection
        self.max_attempts = max_attempts

    def _students(self):
        return self.client.collection(self.students_collection)

    def _counter(self, token_date: str):
        return self.client.collection(self.counters_collection).document(token_date)

    def _register_number(self, register_number: str):
        # Register numbers may hold characters that are not valid in document ids
        key = hashlib.sha256(register_number.encode("utf-8")).hexdigest()
        return self.client.collection(self.register_numbers_collection).document(key)

    @staticmethod
    def _record(snapshot) -> dict:
        return {**snapshot.to_dict(), "id": snapshot.id}

    def list_students(self) -> list[dict]:
        with _firestore_errors("list_students"):
            return [self._record(doc) for doc in self._students().stream()]

    def get_student(self, student_id: str) -> Optional[dict]:
        with _firestore_errors("get_student"):
            snapshot = self._students().document(student_id).get()
        return self._record(snapshot) if snapshot.exists else None

    def find_by_register_number(self, register_number: str) -> Optional[dict]:
        from google.cloud.firestore_v1.base_query import FieldFilter

        with _firestore_errors("find_by_register_number"):
            query = (
                self._students()
                .where(filter=FieldFilter("register_number", "==", register_number))
                .limit(1)
            )
            for doc in query.stream():
                return self._record(doc)
        return None

    def _claim_register_number(self, transaction, register_number: str, student_id: str):
        """Read the guard for register_number; returns its ref once it is free for student_id."""
        guard_ref = self._register_number(register_number)
        snapshot = guard_ref.get(transaction=transaction)
        if snapshot.exists and (snapshot.to_dict() or {}).get("student_id") != student_id:
            raise DuplicateKeyError(register_number)
        return guard_ref

    def _advance_counter(self, transaction, token_date: str) -> int:
        # Read inside the transaction so every retry starts from a fresh value
        counter_ref = self._counter(token_date)
        snapshot = counter_ref.get(transaction=transaction)
        last_token = (snapshot.to_dict() or {}).get("last_token") if snapshot.exists else None
        token_number = next_token_number(last_token)
        transaction.set(counter_ref, counter_document(token_date, token_number))
        return token_number

    def _run_transaction(self, operation: str, fn):
        with _firestore_errors(operation):
            transaction = self.client.transaction(max_attempts=self.max_attempts)
            try:
                return fn(transaction)
            except ValueError as e:
                # Raised by the transactional wrapper once max_attempts is spent
                logger.error(f"Transaction {operation} gave up after {self.max_attempts} attempts: {e}")
                raise TokenAssignmentError() from e

    def insert_with_token(self, document: dict, token_date: str) -> dict:
        from firebase_admin import firestore

        student_ref = self._students().document()
        register_number = document["register_number"]

        @firestore.transactional
        def register(transaction):
            # All reads happen before the first write
            guard_ref = self._claim_register_number(transaction, register_number, student_ref.id)
            token_number = self._advance_counter(transaction, token_date)
            record = {
                **document,
                "id": student_ref.id,
                "token_number": token_number,
                "token_date": token_date,
            }
            transaction.create(guard_ref, {"register_number": register_number, "student_id": student_ref.id})
            transaction.create(student_ref, record)
            return record

        return self._run_transaction("insert_with_token", register)

    def update_student(self, student_id: str, changes: dict, removed: Iterable[str] = ()) -> dict:
        from firebase_admin import firestore

        ref = self._students().document(student_id)
        payload = {
            **changes,
            **{key: firestore.DELETE_FIELD for key in removed},
            "update_count": firestore.Increment(1),
            "updated_at": utc_now(),
        }

        @firestore.transactional
        def apply(transaction):
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFoundError()
            old_number = (snapshot.to_dict() or {}).get("register_number")
            new_number = changes.get("register_number", old_number)
            if new_number != old_number:
                guard_ref = self._claim_register_number(transaction, new_number, student_id)
                if old_number:
                    transaction.delete(self._register_number(old_number))
                transaction.set(guard_ref, {"register_number": new_number, "student_id": student_id})
            transaction.update(ref, payload)

        self._run_transaction("update_student", apply)
        with _firestore_errors("update_student"):
            return self._record(ref.get())

    def record_visit(self, student_id: str) -> dict:
        from firebase_admin import firestore

        ref = self._students().document(student_id)
        with _firestore_errors("record_visit"):
            ref.update({"visit_count": firestore.Increment(1)})
            return self._record(ref.get())

    def delete_student(self, student_id: str) -> None:
        from firebase_admin import firestore

        ref = self._students().document(student_id)

        @firestore.transactional
        def remove(transaction):
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFoundError()
            register_number = (snapshot.to_dict() or {}).get("register_number")
            if register_number:
                transaction.delete(self._register_number(register_number))
            transaction.delete(ref)

        self._run_transaction("delete_student", remove)


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------
class MemoryStudentStore(StudentStore):
    """Process-local store. A single lock stands in for Firestore transactions."""

    def __init__(self):
        self._lock = threading.Lock()
        self.students: dict[str, dict] = {}
        self.counters: dict[str, dict] = {}

    def list_students(self) -> list[dict]:
        with self._lock:
            return copy.deepcopy(list(self.students.values()))

    def get_student(self, student_id: str) -> Optional[dict]:
        with self._lock:
            return copy.deepcopy(self.students.get(student_id))

    def find_by_register_number(self, register_number: str) -> Optional[dict]:
        with self._lock:
            student = self._holder_of(register_number)
            return copy.deepcopy(student)

    def _holder_of(self, register_number: str) -> Optional[dict]:
        for student in self.students.values():
            if student.get("register_number") == register_number:
                return student
        return None

    def _advance_counter(self, token_date: str) -> int:
        last_token = self.counters.get(token_date, {}).get("last_token")
        token_number = next_token_number(last_token)
        self.counters[token_date] = counter_document(token_date, token_number)
        return token_number

    def insert_with_token(self, document: dict, token_date: str) -> dict:
        with self._lock:
            register_number = document.get("register_number")
            if register_number is not None and self._holder_of(register_number) is not None:
                raise DuplicateKeyError(register_number)
            token_number = self._advance_counter(token_date)
            student_id = uuid.uuid4().hex
            record = {
                **copy.deepcopy(document),
                "id": student_id,
                "token_number": token_number,
                "token_date": token_date,
            }
            self.students[student_id] = record
            return copy.deepcopy(record)

    def update_student(self, student_id: str, changes: dict, removed: Iterable[str] = ()) -> dict:
        with self._lock:
            student = self.students.get(student_id)
            if student is None:
                raise NotFoundError()
            register_number = changes.get("register_number")
            if register_number is not None:
                holder = self._holder_of(register_number)
                if holder is not None and holder["id"] != student_id:
                    raise DuplicateKeyError(register_number)
            student.update(copy.deepcopy(changes))
            for key in removed:
                student.pop(key, None)
            student["update_count"] = student.get("update_count", 0) + 1
            student["updated_at"] = utc_now()
            return copy.deepcopy(student)

    def record_visit(self, student_id: str) -> dict:
        with self._lock:
            student = self.students.get(student_id)
            if student is None:
                raise NotFoundError()
            student["visit_count"] = student.get("visit_count", 0) + 1
            return copy.deepcopy(student)

    def delete_student(self, student_id: str) -> None:
        with self._lock:
            if self.students.pop(student_id, None) is None:
                raise NotFoundError()
