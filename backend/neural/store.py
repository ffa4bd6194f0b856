"""
neural/store.py
────────────────
Persistence boundary for trained model parameters.

Classes
-------
ModelStore
    Abstract save / load / exists interface.
FileModelStore
    ``<dir>/<model_id>.keras`` archive plus a ``<model_id>.json`` metadata file.
SupabaseModelStore
    One row per model in the ``neural_models`` table: base64 archive +
    metadata JSON, upserted on ``id``.

Every failure surfaces as ``PersistenceError``.
"""

import base64
import json
import logging
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Tuple, Union

from pydantic import ValidationError

from neural.exceptions import PersistenceError
from neural.model import ForecastModel, model_archive_path
from schemas.training import ModelMetadata

logger = logging.getLogger(__name__)


# ─── Abstract Base ────────────────────────────────────────────────────────────


class ModelStore(ABC):
    """Where a ``Forecaster`` persists and restores its model."""

    @abstractmethod
    def save(self, model: ForecastModel, metadata: ModelMetadata) -> None:
        """
        Persist parameters and metadata, replacing any previous version.

        Raises:
            PersistenceError: On any I/O or serialisation failure.
        """

    @abstractmethod
    def load(self) -> Tuple[ForecastModel, ModelMetadata]:
        """
        Restore the last saved model.

        Raises:
            PersistenceError: Nothing saved, or the payload cannot be decoded.
        """

    @abstractmethod
    def exists(self) -> bool:
        """True if ``load`` has something to restore."""

    @staticmethod
    def _parse_metadata(raw: Any) -> ModelMetadata:
        try:
            if isinstance(raw, (str, bytes)):
                return ModelMetadata.model_validate_json(raw)
            return ModelMetadata.model_validate(raw)
        except ValidationError as exc:
            raise PersistenceError(f"Corrupt model metadata: {exc}") from exc


# ─── Local files ──────────────────────────────────────────────────────────────


class FileModelStore(ModelStore):
    """
    Keras archive and metadata side by side in ``directory``.

    Args:
        directory: Folder holding the files (created on first save).
        model_id:  File stem.
    """

    def __init__(self, directory: Union[str, Path], model_id: str) -> None:
        self.directory = Path(directory)
        self.model_id = model_id

    @property
    def archive_path(self) -> Path:
        return model_archive_path(self.directory / self.model_id)

    @property
    def metadata_path(self) -> Path:
        return self.directory / f"{self.model_id}.json"

    def save(self, model: ForecastModel, metadata: ModelMetadata) -> None:
        model.save(self.archive_path)
        try:
            self.metadata_path.write_text(metadata.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Could not write {self.metadata_path}: {exc}") from exc

    def load(self) -> Tuple[ForecastModel, ModelMetadata]:
        try:
            raw = self.metadata_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Could not read {self.metadata_path}: {exc}") from exc
        metadata = self._parse_metadata(raw)
        model = ForecastModel.load(
            self.archive_path,
            learning_rate=metadata.hyperparameters.get("learning_rate", 0.001),
        )
        return model, metadata

    def exists(self) -> bool:
        return self.archive_path.exists() and self.metadata_path.exists()


# ─── Supabase ─────────────────────────────────────────────────────────────────


class SupabaseModelStore(ModelStore):
    """
    Models stored as rows of a Supabase table.

    Row layout: ``id`` (text, primary key), ``payload`` (base64 ``.keras``
    archive), ``metadata`` (jsonb), ``updated_at`` (timestamptz).

    Args:
        client:   Supabase ``Client`` (see ``core.database``).
        model_id: Row id.
        table:    Table name.
    """

    def __init__(self, client: Any, model_id: str, table: str = "neural_models") -> None:
        self._client = client
        self.model_id = model_id
        self.table = table

    def save(self, model: ForecastModel, metadata: ModelMetadata) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            archive = model.save(Path(tmp) / self.model_id)
            payload = base64.b64encode(archive.read_bytes()).decode("ascii")

        row = {
            "id": self.model_id,
            "payload": payload,
            "metadata": json.loads(metadata.model_dump_json()),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self._client.table(self.table).upsert(row, on_conflict="id").execute()
        except Exception as exc:
            logger.error("Supabase upsert failed for model %s: %s", self.model_id, exc)
            raise PersistenceError(f"Could not store model {self.model_id}: {exc}") from exc
        logger.info("Stored model %s in table %s", self.model_id, self.table)

    def _fetch_row(self, columns: str) -> Any:
        try:
            result = (
                self._client.table(self.table)
                .select(columns)
                .eq("id", self.model_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            raise PersistenceError(f"Could not query model {self.model_id}: {exc}") from exc
        return result.data[0] if result.data else None

    def load(self) -> Tuple[ForecastModel, ModelMetadata]:
        row = self._fetch_row("payload, metadata")
        if row is None:
            raise PersistenceError(f"No stored model with id {self.model_id}")

        metadata = self._parse_metadata(row.get("metadata"))
        try:
            archive_bytes = base64.b64decode(row["payload"], validate=True)
        except (KeyError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Corrupt payload for model {self.model_id}") from exc

        with tempfile.TemporaryDirectory() as tmp:
            archive = model_archive_path(Path(tmp) / self.model_id)
            archive.write_bytes(archive_bytes)
            model = ForecastModel.load(
                archive,
                learning_rate=metadata.hyperparameters.get("learning_rate", 0.001),
            )
        logger.info("Loaded model %s from table %s", self.model_id, self.table)
        return model, metadata

    def exists(self) -> bool:
        return self._fetch_row("id") is not None
