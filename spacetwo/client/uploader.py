"""Client for the upload workflow.

Bytes never pass through the API: the client asks for a signed URL, PUTs the
payload straight to the blob store, then asks the API to record the file.
Multi-file uploads run strictly one after another.
"""
from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path

import httpx

log = logging.getLogger("spacetwo.client")


class ClientError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, body: dict | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body or {}


class UploadFailed(ClientError):
    """The blob store did not accept the PUT; the file was not recorded."""


@dataclass(frozen=True)
class Descriptor:
    upload_url: str
    file_id: str
    path: str
    mime_type: str


@dataclass
class UploadReport:
    recorded: list[dict] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _error_message(resp: httpx.Response) -> tuple[str, dict]:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}", {}
    if isinstance(body, dict):
        return str(body.get("error") or f"HTTP {resp.status_code}"), body
    return f"HTTP {resp.status_code}", {}


class SpacetwoClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        http: httpx.Client | None = None,
        blob_http: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._api = http or httpx.Client(base_url=base_url, timeout=timeout)
        # Signed URLs are absolute and must not carry the API bearer token.
        self._blob = blob_http or httpx.Client(timeout=timeout)
        self._headers = {"Authorization": f"Bearer {token}"}

    def close(self) -> None:
        self._api.close()
        self._blob.close()

    def __enter__(self) -> "SpacetwoClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _call(self, method: str, url: str, **kwargs) -> dict | list:
        resp = self._api.request(method, url, headers=self._headers, **kwargs)
        if resp.status_code >= 400:
            message, body = _error_message(resp)
            raise ClientError(message, status_code=resp.status_code, body=body)
        return resp.json()

    def request_upload(
        self, *, file_name: str, file_type: str, file_size: int, project_name: str, collection_name: str
    ) -> Descriptor:
        j = self._call(
            "POST",
            "/upload",
            json={
                "fileName": file_name,
                "fileType": file_type,
                "fileSize": file_size,
                "projectName": project_name,
                "collectionName": collection_name,
            },
        )
        return Descriptor(upload_url=j["uploadUrl"], file_id=j["fileId"], path=j["path"], mime_type=j["mimeType"])

    def put_bytes(self, descriptor: Descriptor, data: bytes) -> None:
        resp = self._blob.put(descriptor.upload_url, content=data, headers={"Content-Type": descriptor.mime_type})
        if not resp.is_success:
            raise UploadFailed(
                f"Blob store rejected upload ({resp.status_code})",
                status_code=resp.status_code,
                body={"path": descriptor.path},
            )

    def complete_upload(
        self,
        descriptor: Descriptor,
        *,
        file_name: str,
        file_type: str,
        file_size: int,
        project_name: str,
        collection_name: str,
    ) -> dict:
        return self._call(
            "POST",
            "/upload/complete",
            json={
                "fileId": descriptor.file_id,
                "path": descriptor.path,
                "fileName": file_name,
                "fileType": file_type,
                "fileSize": file_size,
                "projectName": project_name,
                "collectionName": collection_name,
            },
        )

    def upload_file(
        self,
        *,
        file_name: str,
        data: bytes,
        project_name: str,
        collection_name: str,
        file_type: str | None = None,
    ) -> dict:
        file_type = file_type or mimetypes.guess_type(file_name)[0] or "application/octet-stream"
        d = self.request_upload(
            file_name=file_name,
            file_type=file_type,
            file_size=len(data),
            project_name=project_name,
            collection_name=collection_name,
        )
        self.put_bytes(d, data)
        return self.complete_upload(
            d,
            file_name=file_name,
            file_type=file_type,
            file_size=len(data),
            project_name=project_name,
            collection_name=collection_name,
        )

    def upload_files(self, paths: list[str | Path], *, project_name: str, collection_name: str) -> UploadReport:
        report = UploadReport()
        for p in paths:
            p = Path(p)
            try:
                out = self.upload_file(
                    file_name=p.name,
                    data=p.read_bytes(),
                    project_name=project_name,
                    collection_name=collection_name,
                )
            except (ClientError, OSError, httpx.HTTPError) as e:
                log.warning("Upload of %s failed: %s", p.name, str(e))
                report.errors.append({"fileName": p.name, "error": str(e)})
                continue
            report.recorded.append(out["file"])
        return report

    def fetch_collections(self, project_id: str) -> list[dict]:
        return self._call("GET", "/collections", params={"project_id": project_id})
