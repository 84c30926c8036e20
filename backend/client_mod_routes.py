"""
Client-Side Mod Check API Routes
================================
Upload one or more mod JARs and get back whether each is client-only.
Upload policy (file type, size ceiling) is enforced here, before the
classifier sees any bytes.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from config import JAR_SUFFIX, MAX_UPLOAD_BYTES, MAX_WORKERS, DEFAULT_LOCALE
from client_mod_filter import (
    Verdict,
    analyze_upload,
    check_upload,
    classify_batch,
    is_jar_filename,
    summarize,
)
from mod_messages import SUPPORTED_LOCALES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/client-mods", tags=["client_mods"])

_CHUNK_SIZE = 1024 * 1024


# ─── Response Models ────────────────────────────────────────

class ModCheckResult(BaseModel):
    fileName: Optional[str] = None
    isClientOnly: bool
    modName: str
    modLoader: str
    reason: str
    detectedMetadataFiles: List[str] = []


class BatchCheckResult(BaseModel):
    results: List[ModCheckResult]
    total: int
    clientOnlyCount: int
    serverCompatibleCount: int
    skipped: List[str] = []


class UploadLimits(BaseModel):
    maxUploadBytes: int
    acceptedSuffix: str
    locales: List[str]
    defaultLocale: str


# ─── Helpers ────────────────────────────────────────────────

async def _read_capped(up: UploadFile, max_bytes: int) -> tuple[Optional[bytes], int]:
    """Read an upload in chunks. Returns (None, bytes_seen) once ``max_bytes`` is exceeded."""
    buf = bytearray()
    try:
        while True:
            chunk = await up.read(_CHUNK_SIZE)
            if not chunk:
                break
            buf.extend(chunk)
            if len(buf) > max_bytes:
                return None, len(buf)
    finally:
        try:
            await up.close()
        except Exception as e:
            logger.debug(f"Closing upload {up.filename} failed: {e}")
    return bytes(buf), len(buf)


# ─── Endpoints ──────────────────────────────────────────────

@router.get("/limits", response_model=UploadLimits)
async def get_upload_limits():
    """Upload policy, so a UI can pre-validate files."""
    return UploadLimits(
        maxUploadBytes=MAX_UPLOAD_BYTES,
        acceptedSuffix=JAR_SUFFIX,
        locales=list(SUPPORTED_LOCALES),
        defaultLocale=DEFAULT_LOCALE,
    )


@router.post("/check", response_model=ModCheckResult)
async def check_mod(
    file: Optional[UploadFile] = File(None),
    locale: Optional[str] = Query(None, description="Language for the reason text (en, th)"),
):
    """
    Check a single mod JAR.
    Policy violations and unreadable archives are reported in the result,
    not as HTTP errors.
    """
    if file is None or not file.filename:
        verdict = check_upload(None, None, locale=locale, max_bytes=MAX_UPLOAD_BYTES)
        return verdict.to_dict(file_name=None)

    filename = file.filename
    rejection = check_upload(filename, file.size, locale=locale, max_bytes=MAX_UPLOAD_BYTES)
    if rejection is not None:
        return rejection.to_dict(file_name=filename)

    data, seen = await _read_capped(file, MAX_UPLOAD_BYTES)
    if data is None:
        rejection = check_upload(filename, seen, locale=locale, max_bytes=MAX_UPLOAD_BYTES)
        return rejection.to_dict(file_name=filename)

    verdict = await run_in_threadpool(analyze_upload, data, filename, locale, MAX_UPLOAD_BYTES)
    return verdict.to_dict(file_name=filename)


@router.post("/check-batch", response_model=BatchCheckResult)
async def check_mods_batch(
    files: List[UploadFile] = File(...),
    locale: Optional[str] = Query(None, description="Language for the reason text (en, th)"),
):
    """
    Check several mod JARs at once. Non-JAR files are skipped and listed;
    the request fails only when no JAR is left to check.
    """
    jars = [f for f in files if f is not None and is_jar_filename(f.filename)]
    skipped: list[str] = []
    for f in files:
        if f is not None and not is_jar_filename(f.filename):
            skipped.append(f.filename or "")
            await f.close()
    if not jars:
        raise HTTPException(status_code=400, detail=f"Only {JAR_SUFFIX} files are allowed")

    names: list[str] = []
    uploads: list[tuple[str, bytes]] = []
    rejected: dict[int, Verdict] = {}
    for idx, up in enumerate(jars):
        names.append(up.filename)
        data, seen = await _read_capped(up, MAX_UPLOAD_BYTES)
        if data is None:
            rejected[idx] = check_upload(up.filename, seen, locale=locale, max_bytes=MAX_UPLOAD_BYTES)
            uploads.append((up.filename, b""))
        else:
            uploads.append((up.filename, data))

    pending = [i for i in range(len(uploads)) if i not in rejected]
    checked = await run_in_threadpool(
        classify_batch, [uploads[i] for i in pending], locale, MAX_WORKERS, MAX_UPLOAD_BYTES
    )
    verdicts = [rejected.get(i) for i in range(len(uploads))]
    for i, verdict in zip(pending, checked):
        verdicts[i] = verdict

    return summarize(names, verdicts, skipped=skipped)
