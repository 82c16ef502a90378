# roitool/store/remote.py
"""HTTP/JSON gateway to a remote object store.

All routes live under ``{scheme}://{server}:{port}/api``:

====== ====================================== ===============================
POST   /session                               log in (credentials or key)
DELETE /session                               log out
GET    /config/{key}                          server configuration value
GET    /images/{id}                           hydrated image
GET    /images/{id}/rois                      ROIs with shapes and links
GET    /{images,rois,shapes}/{id}/annotations linked annotations
POST   /save                                  batch save-and-return
====== ====================================== ===============================

Requests are synchronous and never retried; any failure surfaces as a
:class:`~roitool.errors.StoreError`.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import httpx
from pydantic import BaseModel, ValidationError

from roitool.config import RoitoolConfig
from roitool.errors import AuthenticationError, IdentityError, PersistenceError, StoreError
from roitool.lsid import LsidFormatter
from roitool.model.objects import Annotation, Image, ModelObject, Roi
from roitool.store.base import ANNOTATION_PARENTS, AnnotationParent, StoreGateway
from roitool.store.codec import decode_batch, encode_batch
from roitool.utils.logging import get_logger

logger = get_logger(__name__)

AUTHORITY_KEY = "omero.db.authority"
SESSION_HEADER = "X-Session-Key"
GROUP_HEADER = "X-Omero-Group"


class SessionInfo(BaseModel):
    """Body of a successful ``POST /session``."""

    session_key: str
    database_uuid: str


class RemoteStore(StoreGateway):
    """Store session over HTTP.

    Log in either with ``username``/``password`` or with an existing
    ``session_key``.  A joined session is detached rather than destroyed on
    close so the key stays usable.
    """

    def __init__(
        self,
        base_url: str,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
        session_key: Optional[str] = None,
        timeout: float = 30.0,
        group_context: str = "-1",
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if username is None and session_key is None:
            raise AuthenticationError("No username/password or session key")
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.session_key = session_key
        self.timeout = timeout
        self.group_context = group_context
        self.detach_on_destroy = username is None
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @classmethod
    def from_config(cls, cfg: RoitoolConfig, **overrides: Any) -> "RemoteStore":
        params: dict[str, Any] = {
            "username": cfg.username,
            "password": cfg.password,
            "session_key": cfg.session_key,
            "timeout": cfg.request_timeout,
            "group_context": cfg.group_context,
        }
        params.update(overrides)
        return cls(cfg.base_url, **params)

    # -- session ------------------------------------------------------------

    def connect(self) -> None:
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )
        if self.username is not None:
            payload = {"username": self.username, "password": self.password}
            logger.info("Logging in to %s as %s", self.base_url, self.username)
        else:
            payload = {"session_key": self.session_key}
            logger.info("Joining session on %s", self.base_url)

        try:
            response = self._client.post("/session", json=payload)
        except httpx.HTTPError as exc:
            self._discard_client()
            raise StoreError(f"Cannot reach {self.base_url}: {exc}") from exc
        if response.status_code in (401, 403):
            self._discard_client()
            raise AuthenticationError(
                f"Login rejected by {self.base_url} ({response.status_code})"
            )
        if response.is_error:
            self._discard_client()
            raise StoreError(
                f"Login failed on {self.base_url}: {response.status_code} {response.text}"
            )
        try:
            info = SessionInfo.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            self._discard_client()
            raise StoreError(f"Unexpected login response: {exc}") from exc

        self.session_key = info.session_key
        self._client.headers[SESSION_HEADER] = info.session_key
        self._client.headers[GROUP_HEADER] = self.group_context

        # The session is live from here on; failures leave it for close() to end.
        config = self._get_json(f"/config/{AUTHORITY_KEY}")
        authority = config.get("value") if isinstance(config, dict) else None
        if not isinstance(authority, str) or not authority:
            raise StoreError(f"Server returned no {AUTHORITY_KEY} value")
        self._lsids = LsidFormatter(authority, info.database_uuid)
        logger.debug("Identifier prefix: %s", self._lsids.prefix)

    def close(self) -> None:
        if self._client is None:
            return
        try:
            if self.detach_on_destroy:
                logger.debug("Detaching from session")
            else:
                self._client.delete("/session")
                logger.info("Logged out of %s", self.base_url)
        except httpx.HTTPError as exc:
            logger.warning("Logout from %s failed: %s", self.base_url, exc)
        finally:
            self._discard_client()
            self._lsids = None

    def _discard_client(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # -- plumbing -----------------------------------------------------------

    def _request(
        self, method: str, path: str, *, missing_ok: bool = False, **kwargs: Any
    ) -> Optional[httpx.Response]:
        if self._client is None:
            raise StoreError("Store session is not connected")
        logger.debug("%s %s", method, path)
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise StoreError(f"{method} {path} failed: {exc}") from exc
        if missing_ok and response.status_code == 404:
            return None
        if response.is_error:
            raise StoreError(
                f"{method} {path} failed: {response.status_code} {response.text}"
            )
        return response

    def _get_json(self, path: str, *, missing_ok: bool = False) -> Any:
        response = self._request("GET", path, missing_ok=missing_ok)
        if response is None:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise StoreError(f"GET {path} returned invalid JSON") from exc

    @staticmethod
    def _decode_all(items: Any, path: str) -> list[ModelObject]:
        if not isinstance(items, list):
            raise StoreError(f"{path} returned {type(items).__name__}, expected a list")
        try:
            return decode_batch(items)
        except (KeyError, TypeError, ValueError, IdentityError) as exc:
            raise StoreError(f"{path} returned an undecodable object: {exc}") from exc

    # -- queries ------------------------------------------------------------

    def fetch_image(self, image_id: int) -> Optional[Image]:
        path = f"/images/{image_id}"
        data = self._get_json(path, missing_ok=True)
        if data is None:
            return None
        (image,) = self._decode_all([data], path)
        if not isinstance(image, Image):
            raise StoreError(f"Expected an Image, got {type(image).__name__}")
        return image

    def fetch_rois(self, image_id: int) -> list[Roi]:
        path = f"/images/{image_id}/rois"
        rois = self._decode_all(self._get_json(path), path)
        return [roi for roi in rois if isinstance(roi, Roi)]

    def fetch_annotations(self, parent: AnnotationParent, object_id: int) -> list[Annotation]:
        if parent not in ANNOTATION_PARENTS:
            raise StoreError(f"Unknown annotation parent kind: {parent!r}")
        path = f"/{parent}s/{object_id}/annotations"
        annotations = self._decode_all(self._get_json(path), path)
        return [a for a in annotations if isinstance(a, Annotation)]

    def save_and_return(self, objects: Sequence[ModelObject]) -> list[ModelObject]:
        body = {"objects": encode_batch(objects)}
        try:
            response = self._request("POST", "/save", json=body)
            return self._decode_all(response.json()["objects"], "/save")
        except StoreError as exc:
            raise PersistenceError(str(exc)) from exc
        except (ValueError, KeyError, TypeError) as exc:
            raise PersistenceError(f"Unexpected save response: {exc}") from exc
