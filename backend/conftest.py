import io
import sys
import zipfile
from pathlib import Path

import pytest


here = Path(__file__).resolve()
backend_dir = here.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))


def build_jar(entries: dict) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            if isinstance(content, str):
                content = content.encode("utf-8")
            zf.writestr(name, content)
    return buf.getvalue()


@pytest.fixture
def make_jar():
    return build_jar


@pytest.fixture
def client_only_entries():
    """Rendering-only mod layout: every class under a client package, no server signals."""
    entries = {
        f"com/example/zoom/client/OverlayRenderer{i}.class": b"\xca\xfe\xba\xbe net.minecraft.client.Minecraft"
        for i in range(6)
    }
    entries["META-INF/MANIFEST.MF"] = "Manifest-Version: 1.0\n"
    return entries
