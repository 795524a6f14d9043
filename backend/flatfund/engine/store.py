"""Store contract consumed by the engine, plus a JSON-file implementation.

``SubmissionStore`` is the seam to the backing data store.  The engine only
talks to it through these methods; anything that implements them (a SQL
database, a hosted RPC backend) can be dropped in.

``JsonFileStore`` keeps everything in one JSON document and rewrites it
atomically on every mutation (temp file + ``os.replace``).  All access is
serialised by a re-entrant lock, which gives read-after-write consistency
for the duplicate key within a single process.  Across processes it gives
no such guarantee; use ``unique_submissions=True`` or a real database
constraint there.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from flatfund.engine.errors import DuplicateSubmission, StoreUnavailable
from flatfund.engine.models import (
    Apartment,
    Block,
    Collection,
    Flat,
    IdentityMapping,
    PaymentSubmission,
)

logger = logging.getLogger(__name__)

_EMPTY_DOCUMENT = {
    "apartments": {},
    "blocks": {},
    "flats": {},
    "collections": {},
    "contacts": {},
    "submissions": [],
}


def _contact_key(apartment_id: str, flat_id: str) -> str:
    return f"{apartment_id}:{flat_id}"


# ═══════════════════════════════════════════════════
# CONTRACT
# ═══════════════════════════════════════════════════

class SubmissionStore(ABC):
    """Backing-store operations used by the engine.

    Implementations raise ``StoreUnavailable`` when the store cannot be
    reached; every other exception is treated as a bug.
    """

    # ── reference data ──
    @abstractmethod
    def get_apartment(self, apartment_id: str) -> Optional[Apartment]: ...

    @abstractmethod
    def get_block(self, block_id: str) -> Optional[Block]: ...

    @abstractmethod
    def get_flat(self, flat_id: str) -> Optional[Flat]: ...

    @abstractmethod
    def get_collection(self, collection_id: str) -> Optional[Collection]: ...

    @abstractmethod
    def list_flats(self, apartment_id: str) -> list[tuple[Block, Flat]]: ...

    @abstractmethod
    def list_submissions(self, collection_id: str | None = None, flat_id: str | None = None) -> list[PaymentSubmission]: ...

    # ── engine RPCs ──
    @abstractmethod
    def check_duplicate(self, block_id: str, flat_id: str, collection_id: str,
                        payment_date: str | None = None) -> dict:
        """Return ``{"is_duplicate": bool, "existing": dict | None}``."""

    @abstractmethod
    def reconcile_identity(self, apartment_id: str, block_id: str, flat_id: str,
                           email: str, occupant_type: str) -> dict:
        """Create the flat → email mapping if absent, else compare emails.

        Returns ``{"success": bool, "created": bool, "message": str | None}``.
        """

    @abstractmethod
    def get_contact_info(self, apartment_id: str, flat_id: str) -> Optional[dict]: ...

    @abstractmethod
    def update_contact_info(self, apartment_id: str, flat_id: str, *, mobile: str | None = None,
                            name: str | None = None, whatsapp_opt_in: bool | None = None) -> bool: ...

    @abstractmethod
    def insert_submission(self, submission: PaymentSubmission) -> str: ...


# ═══════════════════════════════════════════════════
# JSON FILE STORE
# ═══════════════════════════════════════════════════

class JsonFileStore(SubmissionStore):
    """Single-document JSON store with atomic writes."""

    def __init__(self, path: Path | str, unique_submissions: bool = False):
        self.path = Path(path)
        self.unique_submissions = unique_submissions
        self._lock = threading.RLock()

    # ── file I/O ──

    def _read(self) -> dict:
        if not self.path.exists():
            return json.loads(json.dumps(_EMPTY_DOCUMENT))
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StoreUnavailable(f"Cannot read store {self.path.name}: {exc}") from exc
        for key, empty in _EMPTY_DOCUMENT.items():
            data.setdefault(key, type(empty)())
        return data

    def _write(self, data: dict):
        """Persist the document (atomic write)."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            payload = json.dumps(data, indent=2, default=str, ensure_ascii=False)
            # Temp file in the same directory so os.replace() is same-device
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp", prefix="store_")
        except OSError as exc:
            raise StoreUnavailable(f"Cannot write store {self.path.name}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(payload)
            os.replace(tmp_path, str(self.path))
        except BaseException as exc:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            if isinstance(exc, OSError):
                raise StoreUnavailable(f"Cannot write store {self.path.name}: {exc}") from exc
            raise

    # ── reference data ──

    def import_reference_data(self, payload: dict[str, Any]) -> dict[str, int]:
        """Validate and load apartments / blocks / flats / collections.

        Every record goes through its ``from_dict`` so bad rate data is
        rejected here (ConfigurationError) rather than at payment time.
        """
        parsed = {
            "apartments": [Apartment.from_dict(d) for d in payload.get("apartments", [])],
            "blocks": [Block.from_dict(d) for d in payload.get("blocks", [])],
            "flats": [Flat.from_dict(d) for d in payload.get("flats", [])],
            "collections": [Collection.from_dict(d) for d in payload.get("collections", [])],
        }
        with self._lock:
            data = self._read()
            for section, records in parsed.items():
                for record in records:
                    data[section][record.id] = record.to_dict()
            self._write(data)
        counts = {section: len(records) for section, records in parsed.items()}
        logger.info(f"Imported reference data into {self.path.name}: {counts}")
        return counts

    def get_apartment(self, apartment_id: str) -> Optional[Apartment]:
        with self._lock:
            raw = self._read()["apartments"].get(apartment_id)
        return Apartment.from_dict(raw) if raw else None

    def get_block(self, block_id: str) -> Optional[Block]:
        with self._lock:
            raw = self._read()["blocks"].get(block_id)
        return Block.from_dict(raw) if raw else None

    def get_flat(self, flat_id: str) -> Optional[Flat]:
        with self._lock:
            raw = self._read()["flats"].get(flat_id)
        return Flat.from_dict(raw) if raw else None

    def get_collection(self, collection_id: str) -> Optional[Collection]:
        with self._lock:
            raw = self._read()["collections"].get(collection_id)
        return Collection.from_dict(raw) if raw else None

    def list_flats(self, apartment_id: str) -> list[tuple[Block, Flat]]:
        with self._lock:
            data = self._read()
        blocks = {
            bid: Block.from_dict(b) for bid, b in data["blocks"].items()
            if b.get("apartment_id") == apartment_id
        }
        result = []
        for raw in data["flats"].values():
            block = blocks.get(raw.get("block_id"))
            if block:
                result.append((block, Flat.from_dict(raw)))
        result.sort(key=lambda bf: (bf[0].block_name, bf[1].flat_number))
        return result

    def list_submissions(self, collection_id: str | None = None, flat_id: str | None = None) -> list[PaymentSubmission]:
        with self._lock:
            rows = self._read()["submissions"]
        return [
            PaymentSubmission.from_dict(r) for r in rows
            if (collection_id is None or r.get("expected_collection_id") == collection_id)
            and (flat_id is None or r.get("flat_id") == flat_id)
        ]

    # ── engine RPCs ──

    def _find_submission(self, data: dict, block_id: str, flat_id: str, collection_id: str) -> Optional[dict]:
        for row in data["submissions"]:
            if (row.get("block_id") == block_id and row.get("flat_id") == flat_id
                    and row.get("expected_collection_id") == collection_id):
                return row
        return None

    def check_duplicate(self, block_id: str, flat_id: str, collection_id: str,
                        payment_date: str | None = None) -> dict:
        # payment_date is accepted for interface parity; the key is the tuple alone
        with self._lock:
            data = self._read()
            row = self._find_submission(data, block_id, flat_id, collection_id)
        if not row:
            return {"is_duplicate": False, "existing": None}
        collection = data["collections"].get(collection_id) or {}
        return {
            "is_duplicate": True,
            "existing": {
                "id": row.get("id"),
                "payment_date": row.get("payment_date"),
                "created_at": row.get("created_at"),
                "payment_quarter": row.get("payment_quarter"),
                "payment_type": row.get("payment_type") or collection.get("payment_type"),
                "collection_name": collection.get("name"),
            },
        }

    def reconcile_identity(self, apartment_id: str, block_id: str, flat_id: str,
                           email: str, occupant_type: str) -> dict:
        email = (email or "").strip().lower()
        key = _contact_key(apartment_id, flat_id)
        with self._lock:
            data = self._read()
            existing = data["contacts"].get(key)
            if existing is None:
                data["contacts"][key] = IdentityMapping(
                    apartment_id=apartment_id,
                    block_id=block_id,
                    flat_id=flat_id,
                    email=email,
                    occupant_type=occupant_type,
                ).to_dict()
                self._write(data)
                logger.info(f"Created identity mapping for flat {flat_id} (apartment {apartment_id})")
                return {"success": True, "created": True, "message": None}

        if (existing.get("email") or "").lower() == email:
            return {"success": True, "created": False, "message": None}
        return {
            "success": False,
            "created": False,
            "message": "This flat is mapped to another email address. Please contact your management committee.",
        }

    def get_contact_info(self, apartment_id: str, flat_id: str) -> Optional[dict]:
        with self._lock:
            raw = self._read()["contacts"].get(_contact_key(apartment_id, flat_id))
        if not raw:
            return None
        return {
            "email": raw.get("email"),
            "mobile": raw.get("mobile"),
            "name": raw.get("name"),
            "occupant_type": raw.get("occupant_type"),
            "whatsapp_opt_in": raw.get("whatsapp_opt_in", True),
        }

    def update_contact_info(self, apartment_id: str, flat_id: str, *, mobile: str | None = None,
                            name: str | None = None, whatsapp_opt_in: bool | None = None) -> bool:
        key = _contact_key(apartment_id, flat_id)
        with self._lock:
            data = self._read()
            contact = data["contacts"].get(key)
            if contact is None:
                return False
            if mobile is not None:
                contact["mobile"] = mobile
            if name is not None:
                contact["name"] = name
            if whatsapp_opt_in is not None:
                contact["whatsapp_opt_in"] = whatsapp_opt_in
            self._write(data)
        return True

    def insert_submission(self, submission: PaymentSubmission) -> str:
        with self._lock:
            data = self._read()
            if self.unique_submissions:
                row = self._find_submission(
                    data, submission.block_id, submission.flat_id, submission.expected_collection_id,
                )
                if row:
                    raise DuplicateSubmission(existing={"id": row.get("id"), "payment_date": row.get("payment_date")})
            data["submissions"].append(submission.to_dict())
            self._write(data)
        logger.info(
            f"Stored submission {submission.id} for flat {submission.flat_id} "
            f"(collection {submission.expected_collection_id})"
        )
        return submission.id
