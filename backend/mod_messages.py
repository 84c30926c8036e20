"""
Localized verdict reasons.

Reasons are display text only; nothing downstream parses them.
"""

from config import DEFAULT_LOCALE

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "declared_client_only": "This mod declares itself CLIENT-ONLY in {descriptor}",
        "declared_client_environment": 'This mod declares environment: "client" in {descriptor}',
        "client_code_structure": "This mod contains only client-side code (rendering, GUI, shaders)",
        "no_client_declaration": (
            "This {loader} mod does not declare a client-only restriction and can be used on a server"
        ),
        "no_client_environment": (
            "This {loader} mod does not declare a client-only environment and can be used on a server"
        ),
        "structure_client_only": "Based on file structure analysis, this mod is likely client-side only",
        "no_metadata": (
            "No mod metadata found; based on file structure analysis, this mod can likely be used on a server"
        ),
        "analysis_error": "An error occurred while analyzing the file: {error}",
        "no_file": "No file was uploaded",
        "wrong_file_type": "Invalid file type, please upload a {suffix} file",
        "file_too_large": "File is too large ({size_mb:.1f} MiB); the limit is {limit_mb} MiB",
    },
    "th": {
        "declared_client_only": "มอดนี้ประกาศตัวเองว่าเป็น CLIENT-ONLY ในไฟล์ {descriptor}",
        "declared_client_environment": 'มอดนี้ประกาศ environment: "client" ในไฟล์ {descriptor}',
        "client_code_structure": "มอดนี้มีเฉพาะโค้ดฝั่งไคลเอนต์ (การเรนเดอร์, GUI, เชเดอร์)",
        "no_client_declaration": (
            "มอด {loader} นี้ไม่ได้ประกาศข้อจำกัด client-only และสามารถใช้กับเซิร์ฟเวอร์ได้"
        ),
        "no_client_environment": (
            "มอด {loader} นี้ไม่ได้ประกาศ environment เป็น client-only และสามารถใช้กับเซิร์ฟเวอร์ได้"
        ),
        "structure_client_only": "จากการวิเคราะห์โครงสร้างไฟล์ มอดนี้น่าจะเป็น client-side only",
        "no_metadata": (
            "ไม่พบ metadata ของมอด จากการวิเคราะห์โครงสร้างไฟล์ มอดนี้น่าจะใช้กับเซิร์ฟเวอร์ได้"
        ),
        "analysis_error": "เกิดข้อผิดพลาดในการวิเคราะห์ไฟล์: {error}",
        "no_file": "ไม่มีไฟล์ที่อัพโหลด",
        "wrong_file_type": "ประเภทไฟล์ไม่ถูกต้อง กรุณาอัพโหลดไฟล์ {suffix}",
        "file_too_large": "ไฟล์มีขนาดใหญ่เกินไป ({size_mb:.1f} MiB) ขนาดสูงสุดคือ {limit_mb} MiB",
    },
}

SUPPORTED_LOCALES = tuple(MESSAGES)


def resolve_locale(locale: str | None) -> str:
    if locale:
        key = locale.strip().lower()
        if key in MESSAGES:
            return key
    if DEFAULT_LOCALE in MESSAGES:
        return DEFAULT_LOCALE
    return "en"


def message(key: str, locale: str | None = None, **kwargs) -> str:
    """Format the reason ``key`` for ``locale``, falling back to English for missing keys."""
    catalog = MESSAGES[resolve_locale(locale)]
    template = catalog.get(key) or MESSAGES["en"][key]
    return template.format(**kwargs)
