"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
import pytest

# Scripts live at the repository root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


SAMPLE_EML = (
    "From: alice@example.com\r\n"
    "To: bob@example.com\r\n"
    "Subject: Quarterly report\r\n"
    "Date: Mon, 6 Jan 2025 10:15:00 +0000\r\n"
    "MIME-Version: 1.0\r\n"
    "Content-Type: text/plain; charset=utf-8\r\n"
    "\r\n"
    "Hello Bob,\r\n"
    "the numbers are attached.\r\n"
)


@pytest.fixture
def sample_eml_text():
    return SAMPLE_EML


@pytest.fixture
def write_eml(tmp_path):
    """Write an .eml file into tmp_path/input and return its path."""
    def _write(name="message.eml", text=SAMPLE_EML):
        folder = tmp_path / "input"
        folder.mkdir(exist_ok=True)
        path = folder / name
        path.write_bytes(text.encode("utf-8"))
        return path
    return _write


@pytest.fixture
def isolated_tempdir(tmp_path, monkeypatch):
    """Point tempfile at an empty folder so leftovers can be detected."""
    import tempfile
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    return scratch
