import copy
import math
import re
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
from uuid import uuid4

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from .errors import ConflictError, NotFoundError, ValidationError
from .media import is_vector_file, upload_file, validate_image_file

PRODUCT_TYPES = ("neon", "floro")
FLORO = "floro"

OPTION_GROUP_FIELDS: Dict[str, Tuple[str, ...]] = {
    "colors": ("name", "value", "class"),
    "sizes": ("value", "name", "width", "height", "price"),
    "fonts": ("name", "class", "font"),
    "addOns": ("id", "name", "icon", "price", "image", "svg"),
    "backgrounds": ("id", "name", "image"),
    "dimmerOptions": ("id", "name", "icon", "price"),
    "shapeOptions": ("id", "name", "icon", "price", "image"),
    "usageOptions": ("id", "name", "icon", "price"),
}
OPTION_GROUPS = tuple(OPTION_GROUP_FIELDS)
NUMERIC_FIELDS = ("price", "width", "height")

# Groups whose entries carry a string id, with the prefix used for new ids.
IDENTIFIED_GROUPS = {
    "addOns": "addon",
    "backgrounds": "background",
    "shapeOptions": "shape",
    "usageOptions": "usage",
}

# Multipart field name carrying replacement images for each group.
FILE_FIELDS = {
    "addOns": "addOnFiles",
    "backgrounds": "backgroundFiles",
    "shapeOptions": "shapeOptionFiles",
}
IMAGE_FIELDS = ("image", "svg")

_file_key_pattern = re.compile(
    r"^(%s)\[([^\]]+)\]$" % "|".join(FILE_FIELDS.values())
)
_group_by_file_field = {field: group for group, field in FILE_FIELDS.items()}


def normalize_product_type(value) -> str:
    product_type = str(value or "").strip().lower()
    if product_type not in PRODUCT_TYPES:
        raise ValidationError(
            f"productType must be one of: {', '.join(PRODUCT_TYPES)}."
        )
    return product_type


def default_dimmer_option(product_type: str) -> Dict[str, object]:
    return {
        "id": None if product_type == FLORO else False,
        "name": "No Dimmer",
        "icon": "❌",
        "price": 0,
    }


def project_dimmer_id(product_type: str, value):
    if product_type == FLORO:
        return value if value is None or value == "dimmer" else None
    return value if isinstance(value, bool) else False


def coerce_numeric(value, label: str, default=None):
    """Return ``value`` as an int or float, ``default`` when it is blank."""
    if value is None:
        return default
    if isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return default
        try:
            number = float(candidate)
        except ValueError:
            raise ValidationError(f"{label} must be a number.", details={"field": label})
    elif isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{label} must be a number.", details={"field": label})
    else:
        number = float(value)

    if not math.isfinite(number):
        raise ValidationError(f"{label} must be a number.", details={"field": label})
    return int(number) if number.is_integer() else number


def generate_option_id(group: str) -> str:
    return f"{IDENTIFIED_GROUPS.get(group, 'option')}-{uuid4().hex[:10]}"


def normalize_option_entry(group: str, index: int, raw) -> Dict[str, object]:
    if not isinstance(raw, dict):
        raise ValidationError(f"{group}[{index}] must be an object.")

    fields = OPTION_GROUP_FIELDS[group]
    entry = {field: raw[field] for field in fields if field in raw}

    for field in NUMERIC_FIELDS:
        if field not in fields:
            continue
        default = 0 if field == "price" else None
        value = coerce_numeric(entry.get(field), f"{group}[{index}].{field}", default)
        if value is None:
            entry.pop(field, None)
        else:
            entry[field] = value
    return entry


def normalize_option_group(group: str, entries) -> List[Dict[str, object]]:
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ValidationError(f"{group} must be a list.")

    normalized = [
        normalize_option_entry(group, index, raw) for index, raw in enumerate(entries)
    ]

    if group in IDENTIFIED_GROUPS:
        seen_ids = set()
        for entry in normalized:
            option_id = str(entry.get("id") or "").strip()
            if not option_id:
                option_id = generate_option_id(group)
            if option_id in seen_ids:
                raise ValidationError(f"Duplicate id '{option_id}' in {group}.")
            seen_ids.add(option_id)
            entry["id"] = option_id

    return normalized


def normalize_dimmer_options(product_type: str, entries) -> List[Dict[str, object]]:
    """Project every dimmer id into the product type's domain.

    An empty or missing list yields the single default "No Dimmer" entry.
    """
    if entries is None or entries == []:
        return [default_dimmer_option(product_type)]
    if not isinstance(entries, list):
        raise ValidationError("dimmerOptions must be a list.")

    normalized = []
    for index, raw in enumerate(entries):
        entry = normalize_option_entry("dimmerOptions", index, raw)
        entry["id"] = project_dimmer_id(product_type, entry.get("id"))
        normalized.append(entry)
    return normalized


def build_options_document(
    product_type: str, payload: Dict, stored: Optional[Dict] = None
) -> Dict[str, object]:
    """Merge an incoming option payload over the stored document.

    Groups present in the payload replace the stored group; absent groups
    keep their stored entries.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Options payload must be a JSON object.")
    stored = stored or {}

    document: Dict[str, object] = {}
    for group in OPTION_GROUPS:
        if group == "dimmerOptions":
            continue
        if group in payload:
            document[group] = normalize_option_group(group, payload[group])
        else:
            document[group] = copy.deepcopy(stored.get(group) or [])

    dimmer_source = (
        payload["dimmerOptions"]
        if "dimmerOptions" in payload
        else copy.deepcopy(stored.get("dimmerOptions"))
    )
    document["dimmerOptions"] = normalize_dimmer_options(product_type, dimmer_source)
    return document


def parse_uploaded_files(files) -> Dict[str, Dict[str, object]]:
    """Group multipart files by option group and their bracketed token."""
    uploads: Dict[str, Dict[str, object]] = {}
    if not files:
        return uploads

    for key, image_file in files.items():
        match = _file_key_pattern.match(key)
        if not match or not getattr(image_file, "filename", ""):
            continue
        group = _group_by_file_field[match.group(1)]
        uploads.setdefault(group, {})[match.group(2).strip()] = image_file
    return uploads


def resolve_upload_targets(document: Dict, uploads: Dict[str, Dict[str, object]]):
    """Pair each uploaded file with the entry it replaces.

    A token naming an entry id always wins; integer tokens fall back to the
    entry at that position.
    """
    targets = []
    for group, files in uploads.items():
        entries = document.get(group) or []
        by_id = {str(entry.get("id")): entry for entry in entries if entry.get("id")}
        claimed = set()
        for token, image_file in files.items():
            entry = by_id.get(token)
            if entry is None and token.isdigit() and int(token) < len(entries):
                entry = entries[int(token)]
            if entry is None:
                raise ValidationError(
                    f"No {group} entry matches uploaded file {FILE_FIELDS[group]}[{token}]."
                )
            if id(entry) in claimed:
                raise ValidationError(
                    f"More than one file was uploaded for the same {group} entry."
                )
            claimed.add(id(entry))
            targets.append((group, entry, image_file))
    return targets


def _entry_key(entry: Dict) -> Optional[Tuple[str, str]]:
    if entry.get("id"):
        return ("id", str(entry["id"]))
    if entry.get("name"):
        return ("name", str(entry["name"]))
    return None


def find_orphaned_images(stored: Optional[Dict], document: Dict) -> List[str]:
    """Image URLs referenced by ``stored`` that ``document`` no longer uses.

    Stored entries are matched to incoming ones by id, or by name for entries
    saved before ids existed. Removed entries and replaced images both count.
    """
    if not stored:
        return []

    still_referenced = set()
    for group in FILE_FIELDS:
        for entry in document.get(group) or []:
            for field in IMAGE_FIELDS:
                if isinstance(entry.get(field), str):
                    still_referenced.add(entry[field])

    orphaned: List[str] = []
    for group in FILE_FIELDS:
        incoming_by_id = {}
        incoming_by_name = {}
        for entry in document.get(group) or []:
            if entry.get("id"):
                incoming_by_id[str(entry["id"])] = entry
            if entry.get("name"):
                incoming_by_name.setdefault(str(entry["name"]), entry)

        for stored_entry in stored.get(group) or []:
            key = _entry_key(stored_entry)
            if key is None:
                match = None
            elif key[0] == "id":
                match = incoming_by_id.get(key[1])
            else:
                match = incoming_by_name.get(key[1])

            for field in IMAGE_FIELDS:
                url = stored_entry.get(field)
                if not isinstance(url, str) or not url:
                    continue
                if match is not None and match.get(field) == url:
                    continue
                if url in still_referenced or url in orphaned:
                    continue
                orphaned.append(url)
    return orphaned


class KeyedLock:
    """In-process mutual exclusion per key."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield


def serialize_customization_options(document) -> Dict[str, object]:
    if not document:
        return {}

    created_at = document.get("createdAt")
    updated_at = document.get("updatedAt")
    serialized: Dict[str, object] = {
        "id": str(document.get("_id")),
        "productType": document.get("productType"),
    }
    for group in OPTION_GROUPS:
        serialized[group] = document.get(group) or []
    serialized["isActive"] = bool(document.get("isActive", True))
    serialized["createdAt"] = (
        created_at.isoformat() + "Z" if isinstance(created_at, datetime) else None
    )
    serialized["updatedAt"] = (
        updated_at.isoformat() + "Z" if isinstance(updated_at, datetime) else None
    )
    return serialized


class CustomizationOptionsService:
    """Reads and reconciles the per-product-type customization documents."""

    def __init__(
        self,
        collection,
        image_store,
        staging_folder: str,
        logger,
        folder: str = "customization-options",
    ):
        self.collection = collection
        self.image_store = image_store
        self.staging_folder = staging_folder
        self.logger = logger
        self.folder = folder
        self._locks = KeyedLock()

    def ensure_indexes(self):
        try:
            self.collection.create_index("productType", unique=True)
        except Exception as exc:
            self.logger.warning(
                "Unable to ensure unique index for customization options: %s", exc
            )

    def list_active(self) -> List[Dict]:
        return list(self.collection.find({"isActive": True}).sort("productType", 1))

    def get_active(self, product_type: str) -> Dict:
        document = None
        if product_type in PRODUCT_TYPES:
            document = self.collection.find_one(
                {"productType": product_type, "isActive": True}
            )
        if not document:
            raise NotFoundError("Customization options not found")
        return document

    def create(self, payload: Dict, files=None) -> Dict:
        if not isinstance(payload, dict):
            raise ValidationError("Options payload must be a JSON object.")
        product_type = normalize_product_type(payload.get("productType"))

        with self._locks.hold(product_type):
            if self.collection.find_one({"productType": product_type}):
                raise ConflictError(
                    f"Customization options for {product_type} already exist. Use PUT to update."
                )

            document = build_options_document(product_type, payload)
            uploaded_ids = self._apply_uploads(product_type, document, files)

            now = datetime.utcnow()
            document.update(
                {
                    "productType": product_type,
                    "isActive": True,
                    "createdAt": now,
                    "updatedAt": now,
                }
            )
            try:
                self.collection.insert_one(document)
            except DuplicateKeyError:
                self._discard_uploads(uploaded_ids)
                raise ConflictError(
                    f"Customization options for {product_type} already exist. Use PUT to update."
                )
            except Exception:
                self._discard_uploads(uploaded_ids)
                raise

        return document

    def update(
        self, product_type: str, payload: Dict, files=None, upsert: bool = True
    ) -> Dict:
        product_type = normalize_product_type(product_type)

        with self._locks.hold(product_type):
            stored = self.collection.find_one({"productType": product_type})
            if stored is None and not upsert:
                raise NotFoundError("Customization options not found")

            document = build_options_document(product_type, payload, stored)
            uploaded_ids = self._apply_uploads(product_type, document, files)
            orphaned_urls = find_orphaned_images(stored, document)

            now = datetime.utcnow()
            set_fields = dict(document)
            set_fields["updatedAt"] = now
            set_on_insert: Dict[str, object] = {"createdAt": now}
            if isinstance(payload.get("isActive"), bool):
                set_fields["isActive"] = payload["isActive"]
            else:
                set_on_insert["isActive"] = True

            try:
                saved = self.collection.find_one_and_update(
                    {"productType": product_type},
                    {"$set": set_fields, "$setOnInsert": set_on_insert},
                    upsert=upsert,
                    return_document=ReturnDocument.AFTER,
                )
            except Exception:
                self._discard_uploads(uploaded_ids)
                raise

            if saved is None:
                self._discard_uploads(uploaded_ids)
                raise NotFoundError("Customization options not found")

            for url in orphaned_urls:
                self.image_store.release_url(url)

        return saved

    def deactivate(self, product_type: str) -> Dict:
        product_type = normalize_product_type(product_type)
        with self._locks.hold(product_type):
            document = self.collection.find_one_and_update(
                {"productType": product_type},
                {"$set": {"isActive": False, "updatedAt": datetime.utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        if not document:
            raise NotFoundError("Customization options not found")
        return document

    def ensure_defaults(self, defaults: Iterable[Dict]) -> List[str]:
        created = []
        for payload in defaults:
            product_type = payload.get("productType")
            if self.collection.find_one({"productType": product_type}):
                self.logger.info(
                    "Customization options for %s already exist", product_type
                )
                continue
            self.create(copy.deepcopy(payload))
            created.append(product_type)
            self.logger.info("Customization options for %s initialized", product_type)
        return created

    def _apply_uploads(self, product_type: str, document: Dict, files) -> List[str]:
        targets = resolve_upload_targets(document, parse_uploaded_files(files))
        for _, _, image_file in targets:
            validate_image_file(image_file, allow_svg=True)

        uploaded_ids: List[str] = []
        try:
            for group, entry, image_file in targets:
                result = upload_file(
                    self.image_store, image_file, self.folder, self.staging_folder
                )
                uploaded_ids.append(result["public_id"])
                entry["image"] = result["url"]
                if (
                    product_type == FLORO
                    and is_vector_file(image_file)
                    and "svg" in OPTION_GROUP_FIELDS[group]
                ):
                    entry["svg"] = result["url"]
        except Exception:
            self._discard_uploads(uploaded_ids)
            raise
        return uploaded_ids

    def _discard_uploads(self, public_ids: Iterable[str]):
        for public_id in public_ids:
            self.image_store.release(public_id)
