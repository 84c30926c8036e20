"""
Client-Side Mod Detection Engine
================================
Decides whether a mod JAR is client-only or can be installed on a headless
server. Detection strategies, in order:

1. Loader descriptor (neoforge.mods.toml, mods.toml, quilt.mod.json, fabric.mod.json)
   - an explicit client-only declaration wins outright
2. Structural heuristics over entry paths and client class contents
3. Fallback to structural heuristics alone when no descriptor is usable

``classify_mod`` never raises: every failure is reported as a verdict.
Upload policy (suffix, size ceiling) is enforced by callers through
``check_upload`` before any bytes reach the zip parser.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from config import JAR_SUFFIX, MAX_UPLOAD_BYTES, MAX_WORKERS
from jar_archive import JarArchive
from jar_heuristics import HeuristicConfig, looks_client_only
from mod_messages import message
from mod_metadata import (
    LoaderMetadata,
    parse_fabric_mod_json,
    parse_forge_mods_toml,
    parse_quilt_mod_json,
)

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════
#  Data Types
# ═══════════════════════════════════════════════════════════════

class ModLoader(str, Enum):
    FORGE = "forge"
    NEOFORGE = "neoforge"
    FABRIC = "fabric"
    QUILT = "quilt"
    UNKNOWN = "unknown"


LOADER_DISPLAY_NAMES = {
    ModLoader.FORGE: "Forge",
    ModLoader.NEOFORGE: "NeoForge",
    ModLoader.FABRIC: "Fabric",
    ModLoader.QUILT: "Quilt",
    ModLoader.UNKNOWN: "Unknown Loader",
}


def loader_display_name(loader: ModLoader | str) -> str:
    try:
        return LOADER_DISPLAY_NAMES[ModLoader(loader)]
    except ValueError:
        return LOADER_DISPLAY_NAMES[ModLoader.UNKNOWN]


@dataclass(frozen=True)
class Verdict:
    is_client_only: bool
    mod_name: str
    mod_loader: ModLoader
    reason: str
    detected_metadata_files: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self, file_name: Optional[str] = None) -> dict:
        d = {
            "isClientOnly": self.is_client_only,
            "modName": self.mod_name,
            "modLoader": self.mod_loader.value,
            "reason": self.reason,
            "detectedMetadataFiles": list(self.detected_metadata_files),
        }
        if file_name is not None:
            d["fileName"] = file_name
        return d


# ═══════════════════════════════════════════════════════════════
#  Descriptor Priority Chain
#  Quilt is checked before Fabric: Quilt mods often also ship a
#  fabric.mod.json for compatibility.
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MetadataSource:
    loader: ModLoader
    label: str
    entry_names: tuple[str, ...]
    parse: Callable[[str], Optional[LoaderMetadata]]
    case_insensitive: bool = False
    declared_key: str = "declared_client_only"
    undeclared_key: str = "no_client_declaration"


METADATA_SOURCES: tuple[MetadataSource, ...] = (
    MetadataSource(
        ModLoader.NEOFORGE, "neoforge.mods.toml",
        ("META-INF/neoforge.mods.toml",), parse_forge_mods_toml,
    ),
    MetadataSource(
        ModLoader.FORGE, "mods.toml",
        ("META-INF/mods.toml",), parse_forge_mods_toml,
        case_insensitive=True,
    ),
    MetadataSource(
        ModLoader.QUILT, "quilt.mod.json",
        ("quilt.mod.json",), parse_quilt_mod_json,
        declared_key="declared_client_environment",
        undeclared_key="no_client_environment",
    ),
    MetadataSource(
        ModLoader.FABRIC, "fabric.mod.json",
        ("fabric.mod.json",), parse_fabric_mod_json,
        declared_key="declared_client_environment",
        undeclared_key="no_client_environment",
    ),
)


def _locate(archive: JarArchive, source: MetadataSource) -> Optional[str]:
    for entry_name in source.entry_names:
        found = archive.find(entry_name, case_insensitive=source.case_insensitive)
        if found:
            return found
    return None


def detect_metadata_files(archive: JarArchive) -> tuple[str, ...]:
    """Labels of the descriptors present in ``archive``, in priority order."""
    return tuple(source.label for source in METADATA_SOURCES if _locate(archive, source))


def strip_jar_suffix(filename: str) -> str:
    name = Path(filename or "").name
    if name.lower().endswith(JAR_SUFFIX):
        name = name[: -len(JAR_SUFFIX)]
    return name or "Unknown Mod"


# ═══════════════════════════════════════════════════════════════
#  Classification
# ═══════════════════════════════════════════════════════════════

def classify_archive(
    archive: JarArchive,
    filename: str,
    locale: Optional[str] = None,
    config: Optional[HeuristicConfig] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Verdict:
    """Run the descriptor chain, then structural heuristics, over an open archive."""
    detected = detect_metadata_files(archive)

    for source in METADATA_SOURCES:
        entry_name = _locate(archive, source)
        if entry_name is None:
            continue
        content = archive.read_text(entry_name)
        if content is None:
            continue
        metadata = source.parse(content)
        if metadata is None:
            logger.debug(f"{filename}: {source.label} present but unusable, trying next descriptor")
            continue

        if metadata.declared_client_only:
            return Verdict(
                is_client_only=True,
                mod_name=metadata.display_name,
                mod_loader=source.loader,
                reason=message(source.declared_key, locale, descriptor=source.label),
                detected_metadata_files=detected,
            )

        if looks_client_only(archive, config=config, cancel_event=cancel_event):
            return Verdict(
                is_client_only=True,
                mod_name=metadata.display_name,
                mod_loader=source.loader,
                reason=message("client_code_structure", locale),
                detected_metadata_files=detected,
            )

        return Verdict(
            is_client_only=False,
            mod_name=metadata.display_name,
            mod_loader=source.loader,
            reason=message(
                source.undeclared_key, locale, loader=loader_display_name(source.loader)
            ),
            detected_metadata_files=detected,
        )

    client_only = looks_client_only(archive, config=config, cancel_event=cancel_event)
    return Verdict(
        is_client_only=client_only,
        mod_name=strip_jar_suffix(filename),
        mod_loader=ModLoader.UNKNOWN,
        reason=message("structure_client_only" if client_only else "no_metadata", locale),
        detected_metadata_files=detected,
    )


def _failure_verdict(filename: str, error: Exception, locale: Optional[str]) -> Verdict:
    description = str(error) or type(error).__name__
    return Verdict(
        is_client_only=False,
        mod_name=filename or "Unknown",
        mod_loader=ModLoader.UNKNOWN,
        reason=message("analysis_error", locale, error=description),
    )


def classify_mod(
    data: bytes,
    filename: str,
    locale: Optional[str] = None,
    config: Optional[HeuristicConfig] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Verdict:
    """Classify raw JAR bytes. Failures come back as a non-client-only verdict."""
    try:
        with JarArchive.from_bytes(data, label=filename) as archive:
            verdict = classify_archive(
                archive, filename, locale=locale, config=config, cancel_event=cancel_event
            )
    except Exception as e:
        logger.warning(f"Cannot analyze {filename}: {e}")
        return _failure_verdict(filename, e, locale)

    logger.info(
        f"{filename}: loader={verdict.mod_loader.value} "
        f"client_only={verdict.is_client_only} name={verdict.mod_name!r}"
    )
    return verdict


# ═══════════════════════════════════════════════════════════════
#  Upload Policy (caller side)
# ═══════════════════════════════════════════════════════════════

def _rejection(filename: Optional[str], reason: str) -> Verdict:
    return Verdict(
        is_client_only=False,
        mod_name=filename or "Unknown",
        mod_loader=ModLoader.UNKNOWN,
        reason=reason,
    )


def is_jar_filename(filename: Optional[str]) -> bool:
    return bool(filename) and filename.lower().endswith(JAR_SUFFIX)


def check_upload(
    filename: Optional[str],
    size: Optional[int],
    locale: Optional[str] = None,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> Optional[Verdict]:
    """Return a rejection verdict if the upload breaks policy, else None."""
    if not filename and size is None:
        return _rejection(None, message("no_file", locale))
    if not is_jar_filename(filename):
        return _rejection(filename, message("wrong_file_type", locale, suffix=JAR_SUFFIX))
    if size is not None and size > max_bytes:
        return _rejection(
            filename,
            message(
                "file_too_large", locale,
                size_mb=size / (1024 * 1024), limit_mb=max_bytes // (1024 * 1024),
            ),
        )
    return None


def analyze_upload(
    data: Optional[bytes],
    filename: Optional[str],
    locale: Optional[str] = None,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> Verdict:
    rejection = check_upload(
        filename, None if data is None else len(data), locale=locale, max_bytes=max_bytes
    )
    if rejection is not None:
        return rejection
    return classify_mod(data, filename, locale=locale)


def analyze_jar_file(
    jar_path: Path,
    locale: Optional[str] = None,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> Verdict:
    """Classify a JAR on disk; oversize files are rejected before being read."""
    try:
        size = jar_path.stat().st_size
    except OSError as e:
        return _failure_verdict(jar_path.name, e, locale)
    rejection = check_upload(jar_path.name, size, locale=locale, max_bytes=max_bytes)
    if rejection is not None:
        return rejection
    try:
        data = jar_path.read_bytes()
    except OSError as e:
        return _failure_verdict(jar_path.name, e, locale)
    return classify_mod(data, jar_path.name, locale=locale)


# ═══════════════════════════════════════════════════════════════
#  Batches
# ═══════════════════════════════════════════════════════════════

def _run_ordered(func: Callable, items: list, max_workers: int) -> list:
    if max_workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]

    results: list = [None] * len(items)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(func, item): idx for idx, item in enumerate(items)}
        for future in as_completed(futures):
            results[futures[future]] = future.result()
    return results


def classify_batch(
    uploads: list[tuple[str, bytes]],
    locale: Optional[str] = None,
    max_workers: int = MAX_WORKERS,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> list[Verdict]:
    """Classify ``(filename, data)`` pairs independently; results keep input order."""
    return _run_ordered(
        lambda item: analyze_upload(item[1], item[0], locale=locale, max_bytes=max_bytes),
        uploads,
        max_workers,
    )


def analyze_jar_files(
    jar_paths: list[Path],
    locale: Optional[str] = None,
    max_workers: int = MAX_WORKERS,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> list[Verdict]:
    return _run_ordered(
        lambda path: analyze_jar_file(path, locale=locale, max_bytes=max_bytes),
        jar_paths,
        max_workers,
    )


def summarize(file_names: list[str], verdicts: list[Verdict], skipped: Optional[list[str]] = None) -> dict:
    client_only = sum(1 for v in verdicts if v.is_client_only)
    summary = {
        "results": [v.to_dict(file_name=name) for name, v in zip(file_names, verdicts)],
        "total": len(verdicts),
        "clientOnlyCount": client_only,
        "serverCompatibleCount": len(verdicts) - client_only,
        "skipped": list(skipped or []),
    }
    logger.info(
        f"Checked {summary['total']} mods: {client_only} client-only, "
        f"{summary['serverCompatibleCount']} server-compatible, {len(summary['skipped'])} skipped"
    )
    return summary
