"""Export and import of the raw analytics collections."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from landingstats.storage.store import PersistenceStore

logger = logging.getLogger(__name__)

EXPORT_SECTIONS = ("visitors", "subscribers", "events", "sessions")


def _section_keys(store: PersistenceStore) -> dict[str, str]:
    return {
        "visitors": store.visitors_key,
        "subscribers": store.subscribers_key,
        "events": store.events_key,
        "sessions": store.sessions_key,
    }


def build_export(store: PersistenceStore) -> dict[str, list]:
    """Collect all four collections, unmodified, into one document."""
    return {section: store.read(key) for section, key in _section_keys(store).items()}


def import_export(store: PersistenceStore, document: dict[str, Any]) -> dict[str, int]:
    """Replace the stored collections with the contents of an export document.

    Returns:
        Number of records written per section

    Raises:
        ValueError: If the document is missing a section or a section isn't a list
    """
    if not isinstance(document, dict):
        raise ValueError("Export document must be a JSON object")
    for section in EXPORT_SECTIONS:
        if not isinstance(document.get(section), list):
            raise ValueError(f"Export document section '{section}' must be a list")

    counts = {}
    for section, key in _section_keys(store).items():
        store.replace(key, document[section])
        counts[section] = len(document[section])
    logger.info("Imported collections: %s", counts)
    return counts


class DataExporter:
    """Write export documents to timestamped files."""

    def __init__(self, export_dir: str | Path = "./exports"):
        self.export_dir = Path(export_dir).expanduser()

    def filename_for(self, store: PersistenceStore, day: datetime | None = None) -> str:
        stamp = (day or datetime.now()).strftime("%Y-%m-%d")
        return f"{store.namespace}-analytics-{stamp}.json"

    def export(self, store: PersistenceStore) -> Path:
        """Export all collections as JSON.

        Returns:
            Path of the written file
        """
        self.export_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.export_dir / self.filename_for(store)

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(build_export(store), f, indent=2, ensure_ascii=False)

        logger.info("Exported analytics data to %s", filepath)
        return filepath

    def load(self, filepath: str | Path) -> dict[str, Any]:
        """Read an export file back into a document."""
        with open(filepath, "r", encoding="utf-8") as f:
            return json.load(f)
