import json

import pytest

from vibesniff.storage.evidence import EvidenceStore


def test_scan_dir_is_per_scan_and_filesystem_safe(tmp_path):
    store = EvidenceStore(tmp_path)

    first = store.get_scan_dir("Login.Example.com", "aaaaaaaaaaaa1111")
    second = store.get_scan_dir("login.example.com", "bbbbbbbbbbbb2222")
    odd = store.get_scan_dir("xn--bcher-kva.example/../x", "cccccccccccc")

    assert first.name == "login.example.com_aaaaaaaaaaaa"
    assert first != second
    assert odd.parent == tmp_path
    assert "/" not in odd.name


@pytest.mark.asyncio
async def test_save_screenshot_and_analysis(tmp_path):
    store = EvidenceStore(tmp_path)

    shot = await store.save_screenshot("example.com", "scan1", b"\x89PNG")
    analysis = await store.save_analysis("example.com", "scan1", {"score": 0.55})

    assert shot.name == "screenshot.png"
    assert shot.read_bytes() == b"\x89PNG"
    assert shot.parent == analysis.parent

    saved = json.loads(analysis.read_text(encoding="utf-8"))
    assert saved["score"] == 0.55
    assert "saved_at" in saved


@pytest.mark.asyncio
async def test_save_analysis_does_not_mutate_input(tmp_path):
    data = {"score": 0.1}
    await EvidenceStore(tmp_path).save_analysis("example.com", "scan2", data)
    assert data == {"score": 0.1}
