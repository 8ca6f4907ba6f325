"""Object storage helper for section illustration images."""

from __future__ import annotations

import logging
import os
from urllib.parse import quote, urlparse, urlunparse

import httpx
from google.api_core import exceptions as gcs_exceptions
from google.auth import exceptions as auth_exceptions
from google.auth.credentials import AnonymousCredentials
from google.cloud import storage
from starlette.concurrency import run_in_threadpool

from app.ai.pipeline.contracts import ObjectStore, StorageError
from app.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/png"
DEFAULT_CACHE_CONTROL = "public, max-age=31536000"


class StorageClient(ObjectStore):
  """Thin wrapper over GCS and emulator access that re-hosts provider images."""

  def __init__(self, settings: Settings, *, client: storage.Client | None = None, http_transport: httpx.AsyncBaseTransport | None = None) -> None:
    self._bucket_name = settings.illustration_bucket
    self._storage_host = settings.gcs_storage_host
    self._download_timeout = settings.download_timeout_seconds
    self._http_transport = http_transport
    self._emulator_endpoint: str | None = None
    if client is not None:
      self._client = client
    elif self._storage_host:
      # Ensure emulator endpoint is visible to the SDK in local development.
      self._emulator_endpoint = _normalize_emulator_endpoint(self._storage_host)
      os.environ["STORAGE_EMULATOR_HOST"] = self._emulator_endpoint
      self._client = storage.Client(project=settings.gcp_project_id or "local-dev", credentials=AnonymousCredentials(), client_options={"api_endpoint": self._emulator_endpoint})
    else:
      self._client = storage.Client(project=settings.gcp_project_id)

  @property
  def bucket_name(self) -> str:
    """Return the bucket holding section images."""
    return self._bucket_name

  async def ensure_bucket(self) -> None:
    """Create the default bucket when missing in local/dev flows."""
    # Keep production startup side-effect free; only auto-create in emulator mode.
    if not self._storage_host:
      return
    bucket = self._client.bucket(self._bucket_name)

    def _create_if_missing() -> None:
      if not bucket.exists(client=self._client):
        self._client.create_bucket(bucket)

    try:
      await run_in_threadpool(_create_if_missing)
    except (gcs_exceptions.GoogleAPICallError, auth_exceptions.GoogleAuthError, OSError) as exc:
      raise StorageError(f"Bucket check for {self._bucket_name} failed: {exc}") from exc

  async def persist(self, remote_url: str, destination_name: str) -> str:
    """Fetch a short-lived provider URL and re-host it; return the durable public URL."""
    image_bytes, content_type = await self._download(remote_url)
    await self.upload_bytes(image_bytes, destination_name, content_type=content_type)
    durable_url = self.public_url(destination_name)
    logger.info("Stored image object=%s bytes=%d", destination_name, len(image_bytes))
    return durable_url

  async def upload_bytes(self, image_bytes: bytes, object_name: str, *, content_type: str = DEFAULT_CONTENT_TYPE, cache_control: str = DEFAULT_CACHE_CONTROL) -> None:
    """Upload image bytes to the default bucket with cache directives."""
    bucket = self._client.bucket(self._bucket_name)
    blob = bucket.blob(object_name)
    blob.cache_control = cache_control
    try:
      await run_in_threadpool(blob.upload_from_string, image_bytes, content_type)
    except (gcs_exceptions.GoogleAPICallError, auth_exceptions.GoogleAuthError, OSError) as exc:
      raise StorageError(f"Upload of {object_name} failed: {exc}") from exc

  def public_url(self, object_name: str) -> str:
    """Return the public URL for an object in the default bucket."""
    if self._emulator_endpoint:
      return f"{self._emulator_endpoint}/{self._bucket_name}/{quote(object_name)}"
    return f"https://storage.googleapis.com/{self._bucket_name}/{quote(object_name)}"

  async def _download(self, remote_url: str) -> tuple[bytes, str]:
    # Provider URLs expire quickly, so the fetch happens once with a bounded timeout and no retry.
    try:
      async with httpx.AsyncClient(transport=self._http_transport, timeout=self._download_timeout, follow_redirects=True) as client:
        response = await client.get(remote_url)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
      raise StorageError(f"Failed to download image: HTTP {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
      raise StorageError(f"Failed to download image: {exc}") from exc

    if not response.content:
      raise StorageError("Downloaded image is empty.")
    content_type = response.headers.get("content-type", DEFAULT_CONTENT_TYPE).split(";", 1)[0].strip()
    if not content_type.startswith("image/"):
      content_type = DEFAULT_CONTENT_TYPE
    return response.content, content_type


def build_storage_client(settings: Settings) -> StorageClient:
  """Create a storage client instance with environment-aware credentials."""
  return StorageClient(settings)


def _normalize_emulator_endpoint(raw_endpoint: str) -> str:
  """Normalize emulator endpoint so the SDK receives scheme+host+port only."""
  parsed = urlparse(raw_endpoint)
  if not parsed.scheme or not parsed.netloc:
    return raw_endpoint.rstrip("/")
  return urlunparse((parsed.scheme, parsed.netloc, "", "", "", "")).rstrip("/")
