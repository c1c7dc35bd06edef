import subprocess
import sys


def test_cli_help() -> None:
    cp = subprocess.run(
        [sys.executable, "-m", "alignvar", "--help"],
        check=True,
        capture_output=True,
        text=True,
    )
    assert "alignvar" in cp.stdout.lower()
