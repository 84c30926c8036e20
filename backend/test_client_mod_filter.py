import threading
import tracemalloc

import client_mod_filter
import jar_archive
from client_mod_filter import (
    ModLoader,
    Verdict,
    analyze_jar_file,
    analyze_upload,
    check_upload,
    classify_batch,
    classify_mod,
    loader_display_name,
    strip_jar_suffix,
    summarize,
)

FORGE_TOML = '[[mods]]\nmodId = "forgemod"\ndisplayName = "Forge Mod"\n'
FORGE_CLIENT_TOML = FORGE_TOML + "clientSideOnly=true\n"
NEOFORGE_TOML = '[[mods]]\nmodId = "neomod"\n'
FABRIC_JSON = '{"id": "fabricmod", "name": "Fabric Mod", "environment": "*"}'
FABRIC_CLIENT_JSON = '{"id":"examplemod","environment":"client"}'
QUILT_JSON = '{"quilt_loader": {"id": "quiltmod", "metadata": {"name": "Quilt Mod"}}}'


# ─── Descriptor chain ───────────────────────────────────────

def test_forge_declared_client_only_ignores_structure(make_jar):
    data = make_jar({
        "META-INF/mods.toml": FORGE_CLIENT_TOML,
        "com/x/server/Handler.class": b"",
        "data/x/recipes/a.json": "{}",
    })
    verdict = classify_mod(data, "forgemod-1.0.jar")
    assert verdict.is_client_only is True
    assert verdict.mod_loader == ModLoader.FORGE
    assert verdict.mod_name == "Forge Mod"
    assert "mods.toml" in verdict.reason
    assert verdict.detected_metadata_files == ("mods.toml",)


def test_neoforge_declared_client_only(make_jar):
    data = make_jar({"META-INF/neoforge.mods.toml": NEOFORGE_TOML + 'side="CLIENT"\n'})
    verdict = classify_mod(data, "neomod.jar")
    assert verdict.is_client_only is True
    assert verdict.mod_loader == ModLoader.NEOFORGE
    assert verdict.mod_name == "neomod"
    assert "neoforge.mods.toml" in verdict.reason


def test_neoforge_takes_priority_over_forge(make_jar):
    data = make_jar({
        "META-INF/mods.toml": FORGE_CLIENT_TOML,
        "META-INF/neoforge.mods.toml": NEOFORGE_TOML,
    })
    verdict = classify_mod(data, "both.jar")
    assert verdict.mod_loader == ModLoader.NEOFORGE
    assert verdict.is_client_only is False
    assert verdict.detected_metadata_files == ("neoforge.mods.toml", "mods.toml")


def test_forge_takes_priority_over_fabric(make_jar):
    data = make_jar({
        "META-INF/mods.toml": FORGE_TOML,
        "fabric.mod.json": FABRIC_CLIENT_JSON,
    })
    verdict = classify_mod(data, "multi.jar")
    assert verdict.mod_loader == ModLoader.FORGE
    assert verdict.is_client_only is False
    assert verdict.mod_name == "Forge Mod"
    assert verdict.detected_metadata_files == ("mods.toml", "fabric.mod.json")


def test_uppercase_forge_descriptor(make_jar):
    verdict = classify_mod(make_jar({"META-INF/MODS.TOML": FORGE_CLIENT_TOML}), "old.jar")
    assert verdict.mod_loader == ModLoader.FORGE
    assert verdict.is_client_only is True
    assert verdict.detected_metadata_files == ("mods.toml",)


def test_quilt_takes_priority_over_fabric(make_jar):
    data = make_jar({"quilt.mod.json": QUILT_JSON, "fabric.mod.json": FABRIC_CLIENT_JSON})
    verdict = classify_mod(data, "q.jar")
    assert verdict.mod_loader == ModLoader.QUILT
    assert verdict.mod_name == "Quilt Mod"
    assert verdict.is_client_only is False
    assert "Quilt" in verdict.reason


def test_malformed_quilt_falls_through_to_fabric(make_jar):
    data = make_jar({"quilt.mod.json": "{broken", "fabric.mod.json": FABRIC_CLIENT_JSON})
    verdict = classify_mod(data, "q.jar")
    assert verdict.mod_loader == ModLoader.FABRIC
    assert verdict.is_client_only is True
    assert verdict.mod_name == "examplemod"
    assert verdict.detected_metadata_files == ("quilt.mod.json", "fabric.mod.json")


def test_quilt_with_non_string_environment_falls_through_to_fabric(make_jar):
    quilt = '{"quilt_loader": {"id": "q", "minecraft": {"environment": 7}}}'
    data = make_jar({"quilt.mod.json": quilt, "fabric.mod.json": FABRIC_CLIENT_JSON})
    verdict = classify_mod(data, "q.jar")
    assert verdict.mod_loader == ModLoader.FABRIC
    assert verdict.is_client_only is True


def test_fabric_client_environment(make_jar):
    verdict = classify_mod(make_jar({"fabric.mod.json": FABRIC_CLIENT_JSON}), "examplemod.jar")
    assert verdict.is_client_only is True
    assert verdict.mod_loader == ModLoader.FABRIC
    assert verdict.mod_name == "examplemod"
    assert "fabric.mod.json" in verdict.reason


def test_fabric_universal_mod_is_server_compatible(make_jar):
    data = make_jar({"fabric.mod.json": FABRIC_JSON, "com/x/Main.class": b""})
    verdict = classify_mod(data, "fabricmod.jar")
    assert verdict.is_client_only is False
    assert verdict.mod_loader == ModLoader.FABRIC
    assert "Fabric" in verdict.reason


def test_undeclared_descriptor_with_client_structure(make_jar, client_only_entries):
    entries = dict(client_only_entries)
    entries["fabric.mod.json"] = FABRIC_JSON
    verdict = classify_mod(make_jar(entries), "zoom.jar")
    assert verdict.is_client_only is True
    assert verdict.mod_loader == ModLoader.FABRIC
    assert verdict.mod_name == "Fabric Mod"
    assert "client-side code" in verdict.reason


# ─── Fallback ───────────────────────────────────────────────

def test_no_descriptor_client_structure(make_jar, client_only_entries):
    verdict = classify_mod(make_jar(client_only_entries), "ZoomMod-2.1.jar")
    assert verdict.is_client_only is True
    assert verdict.mod_loader == ModLoader.UNKNOWN
    assert verdict.mod_name == "ZoomMod-2.1"
    assert "file structure" in verdict.reason
    assert verdict.detected_metadata_files == ()


def test_no_descriptor_below_threshold(make_jar):
    data = make_jar({
        "client/ShaderA.class": b"",
        "client/ShaderB.class": b"",
        "client/Foo.class": b"",
    })
    verdict = classify_mod(data, "tiny.jar")
    assert verdict.is_client_only is False
    assert verdict.mod_loader == ModLoader.UNKNOWN
    assert "No mod metadata" in verdict.reason


def test_malformed_only_descriptor_falls_back(make_jar):
    verdict = classify_mod(make_jar({"fabric.mod.json": "nope"}), "broken.jar")
    assert verdict.mod_loader == ModLoader.UNKNOWN
    assert verdict.mod_name == "broken"
    assert verdict.detected_metadata_files == ("fabric.mod.json",)


def test_server_entry_vetoes_fallback(make_jar, client_only_entries):
    entries = dict(client_only_entries)
    entries["com/example/zoom/server/Sync.class"] = b""
    verdict = classify_mod(make_jar(entries), "zoom.jar")
    assert verdict.is_client_only is False


# ─── Failures ───────────────────────────────────────────────

def test_corrupt_archive_becomes_verdict():
    verdict = classify_mod(b"PK\x03\x04 garbage", "corrupt.jar")
    assert verdict.is_client_only is False
    assert verdict.mod_loader == ModLoader.UNKNOWN
    assert verdict.mod_name == "corrupt.jar"
    assert verdict.reason.startswith("An error occurred while analyzing the file: ")
    assert len(verdict.reason) > len("An error occurred while analyzing the file: ")


def test_compressed_bomb_entry_stays_within_memory(make_jar, monkeypatch):
    monkeypatch.setattr(jar_archive, "MAX_ENTRY_BYTES", 4096)
    data = make_jar({"client/Bomb.class": b"\0" * (8 * 1024 * 1024)})
    tracemalloc.start()
    try:
        verdict = classify_mod(data, "bomb.jar")
        _, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()
    assert verdict.is_client_only is False
    assert verdict.mod_loader == ModLoader.UNKNOWN
    assert peak < 1024 * 1024


def test_cancelled_analysis_becomes_verdict(make_jar, client_only_entries):
    cancel = threading.Event()
    cancel.set()
    verdict = classify_mod(make_jar(client_only_entries), "zoom.jar", cancel_event=cancel)
    assert verdict.is_client_only is False
    assert "cancelled" in verdict.reason


def test_classification_is_idempotent(make_jar, client_only_entries):
    data = make_jar(dict(client_only_entries, **{"META-INF/mods.toml": FORGE_TOML}))
    assert classify_mod(data, "zoom.jar") == classify_mod(data, "zoom.jar")


def test_thai_reasons(make_jar):
    verdict = classify_mod(make_jar({"fabric.mod.json": FABRIC_CLIENT_JSON}), "x.jar", locale="th")
    assert verdict.reason == 'มอดนี้ประกาศ environment: "client" ในไฟล์ fabric.mod.json'


# ─── Upload policy ──────────────────────────────────────────

def test_check_upload_accepts_jar_within_limit():
    assert check_upload("Mod.JAR", 1024) is None


def test_check_upload_rejects_missing_file():
    verdict = check_upload(None, None)
    assert verdict.reason == "No file was uploaded"
    assert verdict.mod_name == "Unknown"


def test_check_upload_rejects_wrong_type():
    verdict = check_upload("notes.txt", 10)
    assert verdict.is_client_only is False
    assert verdict.mod_loader == ModLoader.UNKNOWN
    assert verdict.mod_name == "notes.txt"
    assert ".jar" in verdict.reason


def test_oversize_upload_never_reaches_zip_parser(monkeypatch):
    opened = []
    monkeypatch.setattr(
        client_mod_filter.JarArchive, "from_bytes",
        classmethod(lambda cls, data, label="": opened.append(label)),
    )
    verdict = analyze_upload(b"x" * (2 * 1024 * 1024 + 1), "huge.jar", max_bytes=2 * 1024 * 1024)
    assert opened == []
    assert verdict.mod_loader == ModLoader.UNKNOWN
    assert verdict.is_client_only is False
    assert "too large" in verdict.reason
    assert "limit is 2 MiB" in verdict.reason


def test_analyze_jar_file_from_disk(tmp_path, make_jar):
    jar = tmp_path / "examplemod.jar"
    jar.write_bytes(make_jar({"fabric.mod.json": FABRIC_CLIENT_JSON}))
    verdict = analyze_jar_file(jar)
    assert verdict.is_client_only is True


def test_analyze_jar_file_rejects_oversize_before_reading(tmp_path):
    jar = tmp_path / "big.jar"
    jar.write_bytes(b"\0" * 64)
    verdict = analyze_jar_file(jar, max_bytes=16)
    assert "too large" in verdict.reason


# ─── Batches ────────────────────────────────────────────────

def test_batch_keeps_input_order(make_jar, client_only_entries):
    uploads = [
        ("a.jar", make_jar({"fabric.mod.json": FABRIC_CLIENT_JSON})),
        ("b.jar", make_jar({"META-INF/mods.toml": FORGE_TOML})),
        ("c.txt", b"hello"),
        ("d.jar", make_jar(client_only_entries)),
    ]
    verdicts = classify_batch(uploads, max_workers=3)
    assert [v.is_client_only for v in verdicts] == [True, False, False, True]
    assert verdicts[1].mod_loader == ModLoader.FORGE
    assert verdicts[2].mod_name == "c.txt"


def test_summarize_counts():
    verdicts = [
        Verdict(True, "A", ModLoader.FABRIC, "r"),
        Verdict(False, "B", ModLoader.FORGE, "r", ("mods.toml",)),
    ]
    summary = summarize(["a.jar", "b.jar"], verdicts, skipped=["readme.txt"])
    assert summary["total"] == 2
    assert summary["clientOnlyCount"] == 1
    assert summary["serverCompatibleCount"] == 1
    assert summary["skipped"] == ["readme.txt"]
    assert summary["results"][1] == {
        "isClientOnly": False,
        "modName": "B",
        "modLoader": "forge",
        "reason": "r",
        "detectedMetadataFiles": ["mods.toml"],
        "fileName": "b.jar",
    }


def test_helpers():
    assert strip_jar_suffix("Mod-1.0.JAR") == "Mod-1.0"
    assert strip_jar_suffix(".jar") == "Unknown Mod"
    assert loader_display_name("neoforge") == "NeoForge"
    assert loader_display_name("bogus") == "Unknown Loader"
