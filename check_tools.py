"""
Check that the external programs used by eml_to_pdf.py are installed, and
install the missing ones with the system package manager (apt-get).

  python check_tools.py

Required: ripmime, pandoc, wkhtmltopdf
Optional: munpack (fallback attachment extractor, package "mpack")
"""
import os
import shutil
import subprocess
import sys

REQUIRED_TOOLS = ("ripmime", "pandoc", "wkhtmltopdf")
OPTIONAL_TOOLS = ("munpack",)

# Tools whose package is named differently
PACKAGE_NAMES = {
    "munpack": "mpack",
}


def is_available(tool):
    return shutil.which(tool) is not None


def package_name(tool):
    return PACKAGE_NAMES.get(tool, tool)


def _privileged(cmd):
    """Prefix cmd with sudo unless we are already root."""
    if hasattr(os, "geteuid") and os.geteuid() != 0 and shutil.which("sudo"):
        return ["sudo"] + cmd
    return cmd


def install_package(package):
    """Install one package with apt-get. Raises CalledProcessError on failure."""
    subprocess.run(_privileged(["apt-get", "update", "-qq"]), check=True)
    subprocess.run(_privileged(["apt-get", "install", "-y", package]), check=True)


def check_and_install(tools):
    """Install every tool in `tools` that is not on PATH. Returns the packages installed."""
    installed = []
    for tool in tools:
        if is_available(tool):
            continue
        package = package_name(tool)
        if package != tool:
            print(f"Installing package providing {tool} ({package})...", flush=True)
        else:
            print(f"Installing missing package: {tool}", flush=True)
        install_package(package)
        installed.append(package)
    return installed


def report_optional_tools():
    """Print a note for each optional tool that is missing. Returns the missing ones."""
    missing = [t for t in OPTIONAL_TOOLS if not is_available(t)]
    for tool in missing:
        print(f"Note: '{tool}' not found. Will continue with '{REQUIRED_TOOLS[0]}' only.", flush=True)
    return missing


def ensure_tools():
    installed = check_and_install(REQUIRED_TOOLS)
    report_optional_tools()
    return installed


def main():
    print("=" * 60)
    print("Checking external tools")
    print("=" * 60)

    try:
        ensure_tools()
    except subprocess.CalledProcessError as e:
        print(f"Package installation failed: {e}")
        return 1

    missing = 0
    for tool in REQUIRED_TOOLS + OPTIONAL_TOOLS:
        found = is_available(tool)
        kind = "required" if tool in REQUIRED_TOOLS else "optional"
        print(f"  {tool:<12} {kind:<9} {'OK' if found else 'MISSING'}")
        if not found and tool in REQUIRED_TOOLS:
            missing += 1

    print("=" * 60)
    return 1 if missing else 0


if __name__ == "__main__":
    sys.exit(main())
