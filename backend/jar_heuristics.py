"""
Structural Heuristic Analysis
=============================
Estimates whether a JAR holds client-only code when its descriptor is missing
or does not declare a side. Signals come from entry paths (directory layout,
client terminology) and from the contents of class files that live under a
client package.

Any server-side signal vetoes a client-only result outright.
"""

import re
import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from config import CLIENT_SCORE_THRESHOLD, CLIENT_CLASS_RATIO
from jar_archive import JarArchive

logger = logging.getLogger(__name__)

CLIENT = "client"
SERVER = "server"


# ═══════════════════════════════════════════════════════════════
#  Rule Tables
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DirectoryRule:
    name: str
    target: str
    weight: float
    contains: tuple[str, ...] = ()
    prefixes: tuple[str, ...] = ()

    def matches(self, lower_name: str) -> bool:
        if any(marker in lower_name for marker in self.contains):
            return True
        return any(lower_name.startswith(prefix) for prefix in self.prefixes)


CLIENT_DIR_RULE = DirectoryRule(
    "client_dir", CLIENT, 1,
    contains=("/client/", "\\client\\"), prefixes=("client/",),
)

DIRECTORY_RULES: tuple[DirectoryRule, ...] = (
    CLIENT_DIR_RULE,
    DirectoryRule(
        "server_dir", SERVER, 5,
        contains=("/server/", "\\server\\"), prefixes=("server/",),
    ),
    DirectoryRule("common_dir", SERVER, 5, contains=("/common/", "/shared/")),
    DirectoryRule("mixin_dir", SERVER, 3, contains=("/mixin/", "/mixins/")),
    DirectoryRule(
        "gameplay_data", SERVER, 3,
        contains=("/data/", "/recipe/", "/recipes/", "/loot/", "/advancement/", "/worldgen/"),
    ),
    DirectoryRule(
        "domain_objects", SERVER, 2,
        contains=(
            "/block/", "/item/", "/entity/", "/tile/", "/tileentity/",
            "/blockentity/", "/network/", "/world/", "/registry/",
        ),
    ),
)

CLIENT_KEYWORDS: tuple[str, ...] = (
    "renderer", "shader", "gui", "screen", "hud",
    "overlay", "texture", "model", "optifine", "iris",
)
CLIENT_KEYWORD_WEIGHT = 0.5

# Package references only present in client-side code, written dot-separated.
CLIENT_PACKAGE_PATTERNS: tuple[re.Pattern, ...] = tuple(
    re.compile(re.escape(package))
    for package in (
        "net.minecraft.client",
        "net.minecraftforge.client",
        "net.neoforged.neoforge.client",
        "net.fabricmc.fabric.api.client",
        "org.quiltmc.qsl.client",
        "com.mojang.blaze3d",
        "org.lwjgl",
    )
)
CLIENT_PACKAGE_WEIGHT = 1


# ═══════════════════════════════════════════════════════════════
#  Scoring
# ═══════════════════════════════════════════════════════════════

class AnalysisCancelled(Exception):
    """Raised between entries when the caller's cancel event is set."""


@dataclass
class HeuristicConfig:
    client_score_threshold: float = CLIENT_SCORE_THRESHOLD
    client_class_ratio: float = CLIENT_CLASS_RATIO


@dataclass
class HeuristicScore:
    client_score: float = 0.0
    server_score: int = 0
    total_class_entries: int = 0
    client_dir_class_entries: int = 0
    fired: dict[str, int] = field(default_factory=dict)

    @property
    def client_class_ratio(self) -> float:
        if self.total_class_entries == 0:
            return 0.0
        return self.client_dir_class_entries / self.total_class_entries

    def add(self, rule_name: str, target: str, weight: float) -> None:
        if target == SERVER:
            self.server_score += int(weight)
        else:
            self.client_score += weight
        self.fired[rule_name] = self.fired.get(rule_name, 0) + 1


def _references_client_packages(archive: JarArchive, name: str) -> bool:
    text = archive.read_text(name)
    if text is None:
        return False
    for pattern in CLIENT_PACKAGE_PATTERNS:
        if pattern.search(text):
            return True
    return False


def score_archive(
    archive: JarArchive,
    cancel_event: Optional[threading.Event] = None,
) -> HeuristicScore:
    """Accumulate client/server signals over every entry of ``archive``."""
    score = HeuristicScore()

    def check_cancelled() -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelled(f"analysis of {archive.label or 'archive'} cancelled")

    for name in archive.names:
        check_cancelled()
        lower_name = name.lower()

        for rule in DIRECTORY_RULES:
            if rule.matches(lower_name):
                score.add(rule.name, rule.target, rule.weight)

        for keyword in CLIENT_KEYWORDS:
            if keyword in lower_name:
                score.add("client_keyword", CLIENT, CLIENT_KEYWORD_WEIGHT)

    for name in archive.class_entries():
        check_cancelled()
        score.total_class_entries += 1
        if not CLIENT_DIR_RULE.matches(name.lower()):
            continue
        score.client_dir_class_entries += 1
        if _references_client_packages(archive, name):
            score.add("client_package_ref", CLIENT, CLIENT_PACKAGE_WEIGHT)

    return score


def is_client_only_score(score: HeuristicScore, config: Optional[HeuristicConfig] = None) -> bool:
    config = config or HeuristicConfig()
    if score.server_score > 0:
        return False
    return (
        score.client_score > config.client_score_threshold
        and score.server_score == 0
        and score.client_class_ratio > config.client_class_ratio
    )


def looks_client_only(
    archive: JarArchive,
    config: Optional[HeuristicConfig] = None,
    cancel_event: Optional[threading.Event] = None,
) -> bool:
    score = score_archive(archive, cancel_event=cancel_event)
    result = is_client_only_score(score, config)
    logger.debug(
        f"Structure of {archive.label or 'archive'}: client={score.client_score} "
        f"server={score.server_score} classes={score.client_dir_class_entries}/"
        f"{score.total_class_entries} -> {'client-only' if result else 'server-capable'}"
    )
    return result
