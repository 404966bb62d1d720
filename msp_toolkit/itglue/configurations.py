"""
Bulk configuration (asset) jobs for IT Glue.

Every job is idempotent by re-query: current state is fetched before each
mutation, so a re-run after a partial failure only touches what is left.
Row-level failures are recorded and the job moves on; callers decide the
exit status from ``BulkResult.failed``.
"""

import logging
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass, field
from typing import Any

from msp_toolkit.exceptions import ITGlueAPIError
from msp_toolkit.itglue.client import ITGlueClient
from msp_toolkit.itglue.resources import Resource

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
DELETED = "deleted"
PLANNED = "planned"
SKIPPED = "skipped"
UNCHANGED = "unchanged"
NOT_FOUND = "not-found"
FAILED = "failed"

OUTCOME_FIELDS = ["key", "status", "resource_id", "detail"]

# CSV column (normalized) -> IT Glue configuration attribute
CONFIG_FIELD_MAP = {
    "organization_id": "organization-id",
    "name": "name",
    "configuration_type_id": "configuration-type-id",
    "configuration_status_id": "configuration-status-id",
    "location_id": "location-id",
    "contact_id": "contact-id",
    "manufacturer_id": "manufacturer-id",
    "model_id": "model-id",
    "operating_system_id": "operating-system-id",
    "serial_number": "serial-number",
    "asset_tag": "asset-tag",
    "hostname": "hostname",
    "primary_ip": "primary-ip",
    "mac_address": "mac-address",
    "default_gateway": "default-gateway",
    "installed_by": "installed-by",
    "purchased_by": "purchased-by",
    "purchased_at": "purchased-at",
    "warranty_expires_at": "warranty-expires-at",
    "operating_system_notes": "operating-system-notes",
    "notes": "notes",
}

# Datto RMM's integration type name in IT Glue
DEFAULT_RMM_INTEGRATION = "aem"

ProgressCallback = Callable[[], None]


@dataclass
class RowOutcome:
    key: str
    status: str
    resource_id: str = ""
    detail: str = ""


@dataclass
class BulkResult:
    """Per-row outcomes of a bulk job."""

    operation: str
    outcomes: list[RowOutcome] = field(default_factory=list)

    def add(self, key: str, status: str, resource_id: str = "", detail: str = "") -> None:
        self.outcomes.append(RowOutcome(key, status, str(resource_id or ""), detail))
        log = logger.error if status == FAILED else logger.info
        log(f"{self.operation} {key}: {status}" + (f" ({detail})" if detail else ""))

    def counts(self) -> dict[str, int]:
        return dict(Counter(o.status for o in self.outcomes))

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.status == FAILED)

    def as_rows(self) -> list[dict[str, str]]:
        return [asdict(o) for o in self.outcomes]


def _coerce(column: str, value: str) -> Any:
    if column.endswith("_id") and value.isdigit():
        return int(value)
    return value


def row_to_attributes(row: dict[str, str]) -> dict[str, Any]:
    """Map a normalized CSV row onto configuration attributes, dropping blank cells."""
    attributes = {}
    for column, attribute in CONFIG_FIELD_MAP.items():
        value = (row.get(column) or "").strip()
        if value:
            attributes[attribute] = _coerce(column, value)
    return attributes


def find_existing_configuration(
    client: ITGlueClient,
    organization_id: str | int,
    name: str,
    serial_number: str | None = None,
) -> Resource | None:
    """Find a configuration in an organization by serial number, then by exact name."""
    if serial_number:
        matches = client.get_all(
            "configurations",
            filters={"organization_id": organization_id, "serial_number": serial_number},
        )
        if matches:
            return matches[0]

    matches = client.get_all(
        "configurations", filters={"organization_id": organization_id, "name": name}
    )
    wanted = name.strip().lower()
    for match in matches:
        if match.name.strip().lower() == wanted:
            return match
    return None


def bulk_create(
    client: ITGlueClient,
    rows: Iterable[dict[str, str]],
    dry_run: bool = False,
    on_row: ProgressCallback | None = None,
) -> BulkResult:
    """
    Create configurations from CSV rows, skipping ones that already exist.

    Args:
        client: Authenticated IT Glue client
        rows: Normalized CSV rows; organization_id and name (or hostname) required
        dry_run: Report what would be created without creating it
        on_row: Called after each row (progress reporting)
    """
    result = BulkResult("create")

    for index, row in enumerate(rows, start=1):
        attributes = row_to_attributes(row)
        name = attributes.get("name") or attributes.get("hostname")
        key = str(name or f"row {index}")
        organization_id = attributes.get("organization-id")

        if not organization_id or not name:
            result.add(key, FAILED, detail="organization_id and name are required")
        else:
            attributes["name"] = name
            try:
                existing = find_existing_configuration(
                    client, organization_id, name, attributes.get("serial-number")
                )
                if existing is not None:
                    result.add(key, SKIPPED, existing.id, "already exists")
                elif dry_run:
                    result.add(key, PLANNED, detail=f"would create in organization {organization_id}")
                else:
                    created = client.create("configurations", "configurations", attributes)
                    result.add(key, CREATED, created.id)
            except ITGlueAPIError as e:
                result.add(key, FAILED, detail=e.error_message)

        if on_row is not None:
            on_row()

    return result


def select_configurations(
    client: ITGlueClient,
    organization_id: str | int,
    filters: dict[str, Any] | None = None,
) -> list[Resource]:
    """List configurations in an organization matching additional filters."""
    combined = {"organization_id": organization_id}
    combined.update({k: v for k, v in (filters or {}).items() if v not in (None, "")})
    return client.get_all("configurations", filters=combined)


def bulk_delete(
    client: ITGlueClient,
    ids: Iterable[str | int],
    dry_run: bool = False,
    batch_size: int = 100,
) -> BulkResult:
    """
    Delete configurations by id.

    Each batch is re-queried first so ids that are already gone are reported
    as not-found instead of failing the delete request.
    """
    result = BulkResult("delete")
    unique_ids = list(dict.fromkeys(str(i).strip() for i in ids if str(i).strip()))

    for start in range(0, len(unique_ids), batch_size):
        batch = unique_ids[start : start + batch_size]
        try:
            existing = {r.id: r for r in client.get_all("configurations", filters={"id": batch})}
        except ITGlueAPIError as e:
            for resource_id in batch:
                result.add(resource_id, FAILED, resource_id, e.error_message)
            continue

        present = []
        for resource_id in batch:
            if resource_id in existing:
                present.append(resource_id)
            else:
                result.add(resource_id, NOT_FOUND, resource_id, "already deleted or not visible")

        if not present:
            continue

        if dry_run:
            for resource_id in present:
                result.add(resource_id, PLANNED, resource_id, f"would delete {existing[resource_id].name}")
            continue

        try:
            client.bulk_delete("configurations", "configurations", present, batch_size=batch_size)
        except ITGlueAPIError as e:
            for resource_id in present:
                result.add(resource_id, FAILED, resource_id, e.error_message)
            continue

        for resource_id in present:
            result.add(resource_id, DELETED, resource_id, existing[resource_id].name)

    return result


class ManufacturerCatalog:
    """
    Case-insensitive manufacturer and model lookup for one run.

    Missing entries are created on first use and cached; in dry-run mode they
    are reported as absent (None) instead.
    """

    def __init__(self, client: ITGlueClient, dry_run: bool = False):
        self.client = client
        self.dry_run = dry_run
        self._manufacturers: dict[str, Resource] | None = None
        self._models: dict[str, dict[str, Resource]] = {}

    @staticmethod
    def _key(name: str) -> str:
        return " ".join(name.split()).lower()

    def manufacturer(self, name: str) -> Resource | None:
        if self._manufacturers is None:
            self._manufacturers = {
                self._key(m.name): m for m in self.client.get_all("manufacturers")
            }

        key = self._key(name)
        if key in self._manufacturers:
            return self._manufacturers[key]
        if self.dry_run:
            return None

        created = self.client.create("manufacturers", "manufacturers", {"name": name.strip()})
        logger.info(f"Created manufacturer {name.strip()} ({created.id})")
        self._manufacturers[key] = created
        return created

    def model(self, manufacturer: Resource, name: str) -> Resource | None:
        path = f"manufacturers/{manufacturer.id}/relationships/models"
        models = self._models.get(manufacturer.id)
        if models is None:
            models = {self._key(m.name): m for m in self.client.get_all(path)}
            self._models[manufacturer.id] = models

        key = self._key(name)
        if key in models:
            return models[key]
        if self.dry_run:
            return None

        created = self.client.create(path, "models", {"name": name.strip()})
        logger.info(f"Created model {name.strip()} for {manufacturer.name} ({created.id})")
        models[key] = created
        return created


def locate_configurations(
    client: ITGlueClient,
    row: dict[str, str],
    rmm_integration_type: str = DEFAULT_RMM_INTEGRATION,
) -> list[Resource]:
    """
    Find the configuration(s) a backfill row refers to.

    Lookup order: configuration_id, RMM device UID, serial number, hostname.
    """
    configuration_id = (row.get("configuration_id") or "").strip()
    if configuration_id:
        try:
            return [client.get(f"configurations/{configuration_id}")]
        except ITGlueAPIError as e:
            if e.status_code == 404:
                return []
            raise

    scope = {"organization_id": (row.get("organization_id") or "").strip() or None}

    device_uid = (row.get("device_uid") or "").strip()
    if device_uid:
        return client.get_all(
            "configurations",
            filters={**scope, "rmm_id": device_uid, "rmm_integration_type": rmm_integration_type},
        )

    serial_number = (row.get("serial_number") or "").strip()
    if serial_number:
        return client.get_all("configurations", filters={**scope, "serial_number": serial_number})

    hostname = (row.get("hostname") or row.get("name") or "").strip()
    if hostname:
        matches = client.get_all("configurations", filters={**scope, "name": hostname})
        return [m for m in matches if m.name.strip().lower() == hostname.lower()]

    return []


def _row_key(row: dict[str, str], index: int) -> str:
    for column in ("device_uid", "serial_number", "configuration_id", "hostname", "name"):
        value = (row.get(column) or "").strip()
        if value:
            return value
    return f"row {index}"


def backfill_models(
    client: ITGlueClient,
    rows: Iterable[dict[str, str]],
    dry_run: bool = False,
    overwrite: bool = False,
    rmm_integration_type: str = DEFAULT_RMM_INTEGRATION,
    on_row: ProgressCallback | None = None,
) -> BulkResult:
    """
    Fill in manufacturer and model on configurations from CSV rows.

    Args:
        client: Authenticated IT Glue client
        rows: Normalized CSV rows with manufacturer, model and an identifier
            (configuration_id, device_uid, serial_number or hostname)
        dry_run: Report changes without creating or patching anything
        overwrite: Replace a different manufacturer/model already set
        rmm_integration_type: IT Glue integration type used to match device_uid
        on_row: Called after each row (progress reporting)
    """
    result = BulkResult("backfill")
    catalog = ManufacturerCatalog(client, dry_run=dry_run)

    for index, row in enumerate(rows, start=1):
        key = _row_key(row, index)
        manufacturer_name = (row.get("manufacturer") or "").strip()
        model_name = (row.get("model") or "").strip()

        try:
            if not manufacturer_name:
                result.add(key, FAILED, detail="manufacturer is required")
                continue

            matches = locate_configurations(client, row, rmm_integration_type)
            if not matches:
                result.add(key, NOT_FOUND, detail="no matching configuration")
                continue
            if len(matches) > 1:
                ids = ", ".join(m.id for m in matches)
                result.add(key, FAILED, detail=f"ambiguous: {len(matches)} configurations match ({ids})")
                continue
            configuration = matches[0]

            manufacturer = catalog.manufacturer(manufacturer_name)
            model = None
            if manufacturer is not None and model_name:
                model = catalog.model(manufacturer, model_name)

            target_manufacturer = manufacturer.id if manufacturer else None
            target_model = model.id if model else None
            current_manufacturer = str(configuration.get("manufacturer-id") or "")
            current_model = str(configuration.get("model-id") or "")

            in_place = (
                target_manufacturer is not None
                and current_manufacturer == target_manufacturer
                and (not model_name or (target_model is not None and current_model == target_model))
            )
            conflict = (current_manufacturer and current_manufacturer != target_manufacturer) or (
                current_model and model_name and current_model != target_model
            )

            if in_place:
                result.add(key, UNCHANGED, configuration.id)
            elif conflict and not overwrite:
                current = configuration.get("manufacturer-name") or current_manufacturer
                result.add(
                    key,
                    SKIPPED,
                    configuration.id,
                    f"already set to {current}; use overwrite to replace",
                )
            elif dry_run:
                label = f"{manufacturer_name} {model_name}".strip()
                result.add(key, PLANNED, configuration.id, f"would set {label}")
            else:
                attributes = {"manufacturer-id": _coerce("manufacturer_id", target_manufacturer)}
                if target_model:
                    attributes["model-id"] = _coerce("model_id", target_model)
                client.update(
                    f"configurations/{configuration.id}",
                    "configurations",
                    attributes,
                    resource_id=configuration.id,
                )
                result.add(key, UPDATED, configuration.id, f"{manufacturer_name} {model_name}".strip())
        except ITGlueAPIError as e:
            result.add(key, FAILED, detail=e.error_message)
        finally:
            if on_row is not None:
                on_row()

    return result
