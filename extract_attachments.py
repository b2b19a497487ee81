"""
Extract all attachments from .eml files into a folder structure that
identifies which email each attachment came from.

Each source email gets its own subfolder (named after the email file). The
MIME parts are unpacked with ripmime; when ripmime is missing or fails,
munpack is tried instead. Duplicate names get _1, _2, etc. A folder is only
created when an email has at least one attachment.

  python extract_attachments.py "/path/to/folder_with_emails" "/path/to/output"

Requires: ripmime (or munpack from the mpack package)
"""
import os
import shutil
import subprocess
import sys
import tempfile


def console_safe(s):
    return str(s).encode("ascii", "replace").decode("ascii")


def run_ripmime(eml_path, out_dir):
    """Unpack eml_path into out_dir with ripmime. True on success."""
    if not shutil.which("ripmime"):
        return False
    cmd = [
        "ripmime",
        "-i", eml_path,
        "-d", out_dir,
        "--name-by-type",
        "--no-nameless",
        "--unique_names",
    ]
    try:
        result = subprocess.run(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError:
        return False
    return result.returncode == 0


def run_munpack(eml_path, out_dir):
    """Unpack eml_path into out_dir with munpack. True on success."""
    if not shutil.which("munpack"):
        return False
    # munpack -C changes directory before reading the input
    cmd = ["munpack", "-q", "-C", out_dir, os.path.abspath(eml_path)]
    try:
        result = subprocess.run(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError:
        return False
    return result.returncode == 0


def extract_attachments(eml_path, out_dir):
    """Try ripmime, then munpack. Returns True if either of them succeeded."""
    os.makedirs(out_dir, exist_ok=True)
    if run_ripmime(eml_path, out_dir):
        return True
    return run_munpack(eml_path, out_dir)


def unique_path(folder, name):
    save_path = os.path.join(folder, name)
    n = 1
    while os.path.exists(save_path):
        stem, ext = os.path.splitext(name)
        save_path = os.path.join(folder, f"{stem}_{n}{ext}")
        n += 1
    return save_path


def move_attachments(src_dir, dest_dir):
    """Move everything in src_dir into dest_dir. Returns the saved file names."""
    entries = sorted(os.listdir(src_dir)) if os.path.isdir(src_dir) else []
    if not entries:
        return []
    os.makedirs(dest_dir, exist_ok=True)
    saved = []
    for name in entries:
        target = unique_path(dest_dir, name)
        shutil.move(os.path.join(src_dir, name), target)
        saved.append(os.path.basename(target))
    return saved


def save_attachments(eml_path, dest_dir, work_dir):
    """
    Extract the attachments of one email into dest_dir, using work_dir as
    scratch space. Returns (extraction_ok, saved_names).
    """
    ok = extract_attachments(eml_path, work_dir)
    if not ok:
        return False, []
    return True, move_attachments(work_dir, dest_dir)


def find_eml_files(source):
    return sorted(
        f for f in os.listdir(source)
        if f.lower().endswith(".eml") and os.path.isfile(os.path.join(source, f))
    )


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) < 2:
        print("Usage: python extract_attachments.py INPUT_FOLDER OUTPUT_FOLDER")
        return 1
    source, out_root = argv[0], argv[1]

    if not os.path.isdir(source):
        print(f"Source folder not found: {source}")
        return 1

    os.makedirs(out_root, exist_ok=True)
    print("=" * 60)
    print("Extracting attachments from .eml files")
    print("=" * 60)
    print(f"Source: {source}")
    print(f"Output: {out_root}")
    print("(Each email gets a subfolder; attachments saved inside.)\n")

    emails_processed = 0
    emails_with_attachments = 0
    total_attachments = 0

    for filename in find_eml_files(source):
        base = os.path.splitext(filename)[0]
        work_dir = tempfile.mkdtemp(prefix="eml_parts_")
        try:
            ok, saved = save_attachments(
                os.path.join(source, filename), os.path.join(out_root, base), work_dir
            )
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

        emails_processed += 1
        safe_fn = console_safe(filename)
        if not ok:
            print(f"  SKIP {safe_fn}: extraction failed")
            continue
        if not saved:
            continue

        emails_with_attachments += 1
        total_attachments += len(saved)
        print(f"  [{safe_fn}] -> {len(saved)} attachment(s)")
        for name in saved:
            print(f"      -> {console_safe(name)}")

    print("\n" + "=" * 60)
    print(f"Done. Processed {emails_processed} emails. {emails_with_attachments} had attachments. Extracted {total_attachments} files.")
    print(f"Attachments are in: {out_root}")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
