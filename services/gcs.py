# -*- coding: utf-8 -*-

import os
import json
import base64
import datetime
import logging

from google.api_core import exceptions as gcs_exceptions
from google.cloud import storage

from schemas.analysis import AnalysisResult
from schemas.analysis_contract import SCALAR_SLOTS, SIDECAR_RESULT_TYPE, SIDECAR_SUFFIX
from services.errors import SidecarMissing, StorageWriteError
from services.metadata_codec import FlatMetadata, parse_slot_key

logger = logging.getLogger("api.gcs")

# =========================================================
# LAZY CLIENT
# =========================================================
_client = None


def _get_client():
    global _client
    if _client is not None:
        return _client

    creds_b64 = os.getenv("GOOGLE_APPLICATION_CREDENTIALS_JSON")
    if creds_b64:
        creds = json.loads(base64.b64decode(creds_b64))
        _client = storage.Client.from_service_account_info(creds)
    else:
        _client = storage.Client()

    return _client


def _bucket(bucket_name: str | None = None):
    name = bucket_name or os.getenv("GCS_BUCKET_NAME")
    if not name:
        raise RuntimeError("GCS_BUCKET_NAME not set")
    return _get_client().bucket(name)


def sidecar_name(document_name: str) -> str:
    return f"{document_name}{SIDECAR_SUFFIX}"


def is_sidecar(blob_name: str) -> bool:
    return blob_name.endswith(SIDECAR_SUFFIX)


# =========================================================
# SIGNED READ URL (ANALYZER LOCATOR)
# =========================================================
def generate_signed_url(
    *,
    blob_path: str,
    bucket_name: str | None = None,
    expiration_minutes: int = 120,
) -> str:
    """
    Temporary read-only HTTPS URL the analyzer can dereference.
    """
    blob = _bucket(bucket_name).blob(blob_path)
    return blob.generate_signed_url(
        version="v4",
        expiration=datetime.timedelta(minutes=expiration_minutes),
        method="GET",
    )


# =========================================================
# SIDE-RECORD (OBJECT METADATA)
# =========================================================
def _is_codec_slot(key: str) -> bool:
    return key in SCALAR_SLOTS or parse_slot_key(key) is not None


def write_metadata(*, blob_path: str, metadata: FlatMetadata, bucket_name: str | None = None) -> None:
    """
    Replace the analysis slots on the document's metadata.

    Slots from an earlier analysis that the new record does not carry are
    cleared so indices stay contiguous; unrelated keys are left alone.
    """
    try:
        blob = _bucket(bucket_name).blob(blob_path)
        blob.reload()
        patch = {k: None for k in (blob.metadata or {}) if _is_codec_slot(k) and k not in metadata}
        patch.update(metadata)
        blob.metadata = patch
        blob.patch()
    except gcs_exceptions.GoogleAPIError as exc:
        raise StorageWriteError(f"Metadata update failed for {blob_path}: {exc}") from exc


# =========================================================
# SIDECAR (FULL RESULT)
# =========================================================
def write_sidecar(*, document_name: str, result: AnalysisResult, bucket_name: str | None = None) -> str:
    name = sidecar_name(document_name)
    try:
        blob = _bucket(bucket_name).blob(name)
        blob.metadata = {"originalfile": document_name, "resulttype": SIDECAR_RESULT_TYPE}
        blob.upload_from_string(
            result.model_dump_json(indent=2),
            content_type="application/json",
        )
    except gcs_exceptions.GoogleAPIError as exc:
        raise StorageWriteError(f"Sidecar write failed for {document_name}: {exc}") from exc
    return name


def read_sidecar(*, document_name: str, bucket_name: str | None = None) -> AnalysisResult:
    name = sidecar_name(document_name)
    try:
        text = _bucket(bucket_name).blob(name).download_as_text()
    except gcs_exceptions.NotFound as exc:
        raise SidecarMissing(f"No sidecar for {document_name}") from exc
    except gcs_exceptions.GoogleAPIError as exc:
        raise SidecarMissing(f"Sidecar unreadable for {document_name}: {exc}") from exc

    try:
        return AnalysisResult.model_validate_json(text)
    except ValueError as exc:
        raise SidecarMissing(f"Sidecar for {document_name} is not a valid analysis result") from exc


def load_sidecar_or_none(*, document_name: str, bucket_name: str | None = None) -> AnalysisResult | None:
    try:
        return read_sidecar(document_name=document_name, bucket_name=bucket_name)
    except SidecarMissing as exc:
        logger.info("sidecar_missing document=%s reason=%s", document_name, exc)
        return None


# =========================================================
# LISTING
# =========================================================
def list_document_blobs(*, bucket_name: str | None = None, prefix: str | None = None) -> list:
    """
    Source documents with their metadata; sidecar objects are skipped.
    """
    blobs = _get_client().list_blobs(_bucket(bucket_name), prefix=prefix or None)
    return [blob for blob in blobs if not is_sidecar(blob.name)]


def document_exists(*, blob_path: str, bucket_name: str | None = None) -> bool:
    return bool(_bucket(bucket_name).blob(blob_path).exists())
