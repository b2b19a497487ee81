"""
Convert a folder of .eml files to PDF, extracting attachments on the way.

For every email:
  - Attachments are unpacked with ripmime (munpack as fallback) into
    <output>/attachments/<name>/
  - From, To, Subject and Date are read from the header block
  - The body is converted to HTML with pandoc (raw text in <pre> if that fails)
  - A single HTML page (header block + body) is rendered to
    <output>/pdfs/<name>.pdf with wkhtmltopdf (xhtml2pdf as fallback)

  python eml_to_pdf.py
  python eml_to_pdf.py "/path/to/emails" "/path/to/output"

Requires: pip install pdfkit xhtml2pdf
Requires: ripmime, pandoc, wkhtmltopdf (installed by check_tools.py if missing)
"""
import os
import re
import shutil
import subprocess
import sys
import tempfile
from collections import namedtuple
from email.errors import HeaderParseError
from email.header import decode_header, make_header

import pdfkit
from xhtml2pdf import pisa

import check_tools
from extract_attachments import console_safe, find_eml_files, save_attachments

# wkhtmltopdf configuration (empty means: look it up on PATH)
WKHTMLTOPDF_PATH = os.environ.get("WKHTMLTOPDF_PATH") or shutil.which("wkhtmltopdf") or ""

PDFKIT_OPTIONS = {
    "encoding": "UTF-8",
    "enable-local-file-access": "",
    "quiet": "",
}

# Header name -> value shown when the header is missing or empty
HEADER_PLACEHOLDERS = {
    "From": "(unknown sender)",
    "To": "(unknown recipient)",
    "Subject": "(no subject)",
    "Date": "(no date)",
}

EmlResult = namedtuple("EmlResult", ["base_name", "pdf_path", "attachments", "pdf_ok"])


def html_escape(s):
    if s is None:
        return ""
    s = str(s)
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def read_text(path):
    with open(path, "rb") as f:
        return f.read().decode("utf-8", errors="replace")


def decode_header_value(value):
    """Decode RFC 2047 encoded words; return the value unchanged if that fails."""
    try:
        return str(make_header(decode_header(value)))
    except (HeaderParseError, LookupError, UnicodeError):
        return value


def header_lines(text):
    """Lines of the header block, i.e. everything before the first blank line."""
    lines = []
    for line in text.splitlines():
        if not line.strip():
            break
        lines.append(line)
    return lines


def find_header(lines, name):
    """First value of header `name` (case-insensitive), with folded lines joined."""
    prefix = re.compile(rf"^{re.escape(name)}:\s*", re.IGNORECASE)
    for i, line in enumerate(lines):
        m = prefix.match(line)
        if not m:
            continue
        parts = [line[m.end():].strip()]
        for cont in lines[i + 1:]:
            if cont[:1] not in (" ", "\t"):
                break
            parts.append(cont.strip())
        return " ".join(p for p in parts if p)
    return ""


def read_headers(eml_path):
    """Return {"From", "To", "Subject", "Date"} for eml_path, with placeholders for missing ones."""
    lines = header_lines(read_text(eml_path))
    headers = {}
    for name, placeholder in HEADER_PLACEHOLDERS.items():
        value = find_header(lines, name)
        if value:
            value = decode_header_value(value)
        headers[name] = value or placeholder
    return headers


def render_body(eml_path, work_dir):
    """
    Convert the message to HTML with pandoc, written to <work_dir>/body.html.
    If pandoc is missing or fails, the raw message is wrapped in <pre> instead.
    Returns the body HTML.
    """
    body_file = os.path.join(work_dir, "body.html")
    converted = False
    try:
        subprocess.run(
            ["pandoc", eml_path, "-t", "html", "-o", body_file],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=True,
        )
        converted = os.path.isfile(body_file)
    except (subprocess.CalledProcessError, OSError):
        converted = False

    if not converted:
        with open(body_file, "w", encoding="utf-8") as f:
            f.write(f"<pre>{html_escape(read_text(eml_path))}</pre>")

    with open(body_file, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def build_html(headers, body_html):
    """Build the final HTML document: header block + rendered body."""
    sender = html_escape(headers["From"])
    to = html_escape(headers["To"])
    date_str = html_escape(headers["Date"])
    subject = html_escape(headers["Subject"])
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>{subject}</title>
<style>
body {{ font-family: Arial, sans-serif; margin: 20px; }}
.header {{ background: #f4f4f4; padding: 15px; border-radius: 8px; margin-bottom: 20px; }}
.header b {{ display: inline-block; width: 80px; }}
pre {{ white-space: pre-wrap; word-wrap: break-word; }}
</style>
</head>
<body>
<div class="header">
  <p><b>From:</b> {sender}</p>
  <p><b>To:</b> {to}</p>
  <p><b>Date:</b> {date_str}</p>
  <p><b>Subject:</b> {subject}</p>
</div>
<div class="body">
{body_html}
</div>
</body>
</html>"""


def render_with_xhtml2pdf(html_path, pdf_path):
    """Pure-Python fallback renderer. True on success."""
    with open(html_path, "r", encoding="utf-8") as f:
        html = f.read()
    try:
        with open(pdf_path, "wb") as pdf_file:
            status = pisa.CreatePDF(html, dest=pdf_file, encoding="utf-8")
        failed = bool(status.err)
    except Exception as e:
        print(f"  xhtml2pdf failed: {e}", flush=True)
        failed = True
    if failed and os.path.exists(pdf_path):
        os.remove(pdf_path)
    return not failed


def html_to_pdf(html_path, pdf_path):
    """Render html_path to pdf_path. Returns True if a PDF was written."""
    # a PDF left by an earlier run must not pass for this one
    if os.path.exists(pdf_path):
        os.remove(pdf_path)
    try:
        config = pdfkit.configuration(wkhtmltopdf=WKHTMLTOPDF_PATH)
        pdfkit.from_file(html_path, pdf_path, configuration=config, options=PDFKIT_OPTIONS)
        return True
    except OSError as e:
        # wkhtmltopdf exits non-zero on minor resource errors but still writes the PDF
        if os.path.isfile(pdf_path) and os.path.getsize(pdf_path) > 0:
            print("  wkhtmltopdf reported an error; keeping its output.", flush=True)
            return True
        print(f"  wkhtmltopdf failed ({console_safe(e)}); trying xhtml2pdf.", flush=True)
    return render_with_xhtml2pdf(html_path, pdf_path)


def pdf_path_for(output_dir, base_name):
    return os.path.join(output_dir, "pdfs", base_name + ".pdf")


def attachments_dir_for(output_dir, base_name):
    return os.path.join(output_dir, "attachments", base_name)


def process_one_eml(eml_path, output_dir):
    """Extract attachments and render one .eml file. Returns an EmlResult."""
    base_name = os.path.splitext(os.path.basename(eml_path))[0]
    print(f"Processing: {console_safe(base_name)}.eml", flush=True)

    work_dir = tempfile.mkdtemp(prefix="eml2pdf_")
    try:
        ok, attachments = save_attachments(
            eml_path,
            attachments_dir_for(output_dir, base_name),
            os.path.join(work_dir, "parts"),
        )
        if attachments:
            print(f"  Attachments extracted: {len(attachments)}", flush=True)
        else:
            print("  No attachments found or extraction failed.", flush=True)

        headers = read_headers(eml_path)
        body_html = render_body(eml_path, work_dir)

        final_html = os.path.join(work_dir, "final.html")
        with open(final_html, "w", encoding="utf-8") as f:
            f.write(build_html(headers, body_html))

        pdf_path = pdf_path_for(output_dir, base_name)
        pdf_ok = html_to_pdf(final_html, pdf_path)
        if pdf_ok:
            print(f"  Saved PDF: {console_safe(pdf_path)}", flush=True)
        else:
            print(f"  PDF rendering failed: {console_safe(pdf_path)}", flush=True)
    finally:
        shutil.rmtree(work_dir, ignore_errors=True)

    return EmlResult(base_name, pdf_path, attachments, pdf_ok)


def convert_folder(input_dir, output_dir, eml_files=None):
    """Process every .eml in input_dir. Returns one EmlResult per file."""
    if eml_files is None:
        eml_files = find_eml_files(input_dir)
    results = []
    seen = set()
    for filename in eml_files:
        eml_path = os.path.join(input_dir, filename)
        base_name = os.path.splitext(filename)[0]
        if base_name in seen:
            # a.eml and a.EML both map to pdfs/a.pdf
            print(f"  SKIPPED: {console_safe(filename)} - same output name as an earlier file", flush=True)
            results.append(EmlResult(base_name, pdf_path_for(output_dir, base_name), [], False))
            continue
        seen.add(base_name)
        try:
            results.append(process_one_eml(eml_path, output_dir))
        except Exception as e:
            print(f"  FAILED: {console_safe(filename)} - {console_safe(e)}", flush=True)
            results.append(EmlResult(base_name, pdf_path_for(output_dir, base_name), [], False))
    return results


def print_summary(output_dir, results):
    converted = sum(1 for r in results if r.pdf_ok)
    failed = len(results) - converted
    attachments = sum(len(r.attachments) for r in results)

    print("\n" + "=" * 60)
    print(f"All done! {converted} converted, {failed} failed (total {len(results)}), {attachments} attachment(s).")
    print(f"PDFs saved in: {os.path.join(output_dir, 'pdfs')}")
    print(f"Attachments saved in: {os.path.join(output_dir, 'attachments')}")
    print("=" * 60)


def _clean_path(raw):
    return os.path.expanduser(raw.strip().strip('"').strip("'"))


def prompt_for_folders(argv, ask=None):
    """Input and output folders from argv, prompting for whichever is missing."""
    ask = ask or input
    source = argv[0] if len(argv) > 0 else ask("Enter path to folder containing .eml files: ")
    out = argv[1] if len(argv) > 1 else ask("Enter path to output folder: ")
    return _clean_path(source), _clean_path(out)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv

    try:
        check_tools.ensure_tools()
    except subprocess.CalledProcessError as e:
        print(f"Error: could not install required tools: {e}")
        return 1

    source, out = prompt_for_folders(argv)

    if not os.path.isdir(source):
        print("Error: Input directory not found!")
        return 1

    os.makedirs(os.path.join(out, "attachments"), exist_ok=True)
    os.makedirs(os.path.join(out, "pdfs"), exist_ok=True)

    eml_files = find_eml_files(source)
    if not eml_files:
        print(f"No .eml files found in {source}")
        return 0

    print("=" * 60)
    print(f"Converting {len(eml_files)} .eml file(s) to PDF")
    print("=" * 60)
    print(f"Source: {source}")
    print(f"Output: {out}\n", flush=True)

    results = convert_folder(source, out, eml_files)
    print_summary(out, results)
    return 0


if __name__ == "__main__":
    sys.exit(main())
