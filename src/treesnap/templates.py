"""Snapshot templates.

A template is an HTML document holding placeholders such as ``[TITLE]`` and
exactly one ``[DIR DATA]`` marker, where the encoded folder records go. The
bundled default only collects the records into ``D.dirs``; richer viewers are
supplied as template files.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from .constants import APP_LINK, DIR_DATA_MARKER
from .core import GenerationOptions, ScanResult
from .errors import MissingMarkerError, TemplateNotFoundError
from .utils import format_generated, format_version

DEFAULT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>[TITLE]</title>
<meta name="generator" content="[APP NAME] [APP VER] ([APP LINK])">
</head>
<body>
<h1>[TITLE]</h1>
<p>[NUM FILES] files in [NUM DIRS] folders, [TOT SIZE] bytes.
Generated [GEN DATE] [GEN TIME].</p>
<script>
var D = {
    linkFiles: [LINK FILES],
    linkProtocol: "[LINK PROTOCOL]",
    linkRoot: "[LINK ROOT]",
    sourceRoot: "[SOURCE ROOT]",
    dirs: [],
    p: function (d) { this.dirs.push(d); }
};
[DIR DATA]
</script>
</body>
</html>
"""

# Drive-letter roots ("C:/...") need the file:// protocol in a browser
_DRIVE_ROOT = re.compile(r"^.:/")
_DRIVE_LETTER = re.compile(r"^.:")


def load_template(path: Optional[str] = None) -> str:
    """Load a template file, or the bundled default when no path is given.

    Raises:
        TemplateNotFoundError: If ``path`` does not exist
    """
    if path is None:
        return DEFAULT_TEMPLATE
    template_path = Path(path)
    if not template_path.is_file():
        raise TemplateNotFoundError(str(path))
    return template_path.read_text(encoding="utf-8")


def link_protocol(link_root: str) -> str:
    """Protocol prefix for file links under ``link_root`` (forward slashes).

    Examples:
        "C:/files" -> "file://"
        "//server/share" -> "file://///"
        "https://example.com/files" -> ""
    """
    if _DRIVE_ROOT.match(link_root):
        return "file://"
    if link_root.startswith("//"):
        return "file://///"
    return ""


def normalize_link_root(link_root: str) -> str:
    """Append the separator links are joined with, where the root's form makes it clear.

    Examples:
        "http://host/files" -> "http://host/files/"
        "C:\\share\\files" -> "C:\\share\\files\\"
        "\\\\server\\share" -> "\\\\server\\share\\"
        "//server/share" -> "//server/share/"
        "/srv/files" -> "/srv/files"
    """
    if link_root.endswith(("/", "\\")):
        return link_root
    if link_root.lower().startswith("http") or link_root.startswith("//"):
        return link_root + "/"
    if _DRIVE_LETTER.match(link_root) or link_root.startswith("\\\\"):
        return link_root + "\\"
    return link_root


def apply_replacements(
    template: str,
    scan_result: ScanResult,
    options: GenerationOptions,
    now: Optional[datetime] = None,
) -> str:
    """Substitute the template placeholders (everything except the data marker).

    Substitution is a single pass, so placeholder text inside a value (a title
    such as "[NUM FILES] files") is kept literally. The data marker is removed
    from values so the template still splits at the template's own marker.
    """
    now = now or datetime.now()
    gen_time, gen_date = format_generated(now)
    source_root = options.root_folder.replace("\\", "/")

    if options.link_files:
        link_root = normalize_link_root(options.link_root).replace("\\", "/")
        link_files, protocol = "true", link_protocol(link_root)
    else:
        link_root, link_files, protocol = "", "false", ""

    replacements = {
        "[TITLE]": options.title,
        "[APP LINK]": APP_LINK,
        "[APP NAME]": options.app_name,
        "[APP VER]": format_version(options.app_version),
        "[GEN TIME]": gen_time,
        "[GEN DATE]": gen_date,
        "[NUM FILES]": str(scan_result.total_files),
        "[NUM DIRS]": str(scan_result.total_directories),
        "[TOT SIZE]": str(scan_result.total_size),
        "[LINK FILES]": link_files,
        "[LINK PROTOCOL]": protocol,
        "[LINK ROOT]": link_root,
        "[SOURCE ROOT]": source_root,
    }
    pattern = re.compile("|".join(re.escape(p) for p in replacements))
    return pattern.sub(
        lambda m: replacements[m.group(0)].replace(DIR_DATA_MARKER, ""),
        template,
    )


def split_template(template: str) -> Tuple[str, str]:
    """Split a template into (header, footer) around the data marker.

    Raises:
        MissingMarkerError: If the marker is absent
    """
    start = template.find(DIR_DATA_MARKER)
    if start < 0:
        raise MissingMarkerError(DIR_DATA_MARKER)
    return template[:start], template[start + len(DIR_DATA_MARKER):]
