"""Tests for senml_codec.py run as a script"""

import subprocess
import sys
from pathlib import Path

import yaml

TOOLS_DIR = Path(__file__).parent.parent
TOOL_PATH = TOOLS_DIR / "senml_codec.py"


def run_tool(*args):
    return subprocess.run(
        [sys.executable, str(TOOL_PATH), *args],
        capture_output=True,
        text=True,
        cwd=str(TOOLS_DIR),
    )


def test_self_test():
    """Run the tool's built-in self-test."""
    result = run_tool("--self-test")
    assert result.returncode == 0, f"Self-test failed: {result.stdout}{result.stderr}"
    assert "[PASS]" in result.stdout
    assert "[FAIL]" not in result.stdout
    assert "[INFO]" in result.stderr


def test_help():
    """Test that --help works."""
    result = run_tool("--help")
    assert result.returncode == 0
    assert "senml" in result.stdout.lower()


def test_demo():
    """Demo prints every format and a YAML dump of the normalized pack."""
    result = run_tool()
    assert result.returncode == 0, result.stderr
    for name in ("JSON", "XML", "CBOR", "PROTO"):
        assert f"{name} (" in result.stdout
    assert '<sensml xmlns="urn:ietf:params:xml:ns:senml">' in result.stdout

    dumped = yaml.safe_load(result.stdout.split("Normalized:", 1)[1])
    assert [r["name"] for r in dumped] == [
        "urn:dev:ow:10e2073a01080063:humidity",
        "urn:dev:ow:10e2073a01080063:temperature",
        "urn:dev:ow:10e2073a01080063:door",
        "urn:dev:ow:10e2073a01080063:firmware",
    ]
    assert dumped[2]["bool_value"] is False
    assert dumped[3]["string_value"] == "1.2.3"
