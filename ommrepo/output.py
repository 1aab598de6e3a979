"""
Output module for ommrepo.

Every command writes through here so output stays consistent:
- JSONL (default): one JSON object per line, for piping into jq and friends
- Pretty: Rich tables for people

Usage:
    from ommrepo.output import emit, emit_record, emit_error

    emit(index.all_entries(), pretty=pretty)
    emit_record(index_info, pretty=pretty, title="Repository")
    emit_error("Not found", type="not_found", context={"identifier": "foo"})
"""

import json
import sys
from typing import Iterable, Any, Dict, Optional, List

from rich.console import Console
from rich.table import Table

# Column order for package entries; anything else is appended alphabetically
ENTRY_COLUMNS = ['identifier', 'file', 'bytes', 'algorithm', 'checksum', 'custom_location', 'category']
MAX_COLUMNS = 8


def _as_dict(item: Any) -> Dict[str, Any]:
    if hasattr(item, 'to_dict'):
        return item.to_dict()
    if isinstance(item, dict):
        return item
    return {'value': str(item)}


def emit(
    items: Iterable[Any],
    pretty: bool = False,
    columns: Optional[List[str]] = None,
    title: Optional[str] = None,
    err: bool = False
) -> None:
    """
    Emit items as JSONL or as a table.

    Args:
        items: Objects with to_dict(), or plain dicts
        pretty: Render a Rich table instead of JSONL
        columns: Table columns (derived from the rows if None)
        title: Table title
        err: Write to stderr instead of stdout
    """
    stream = sys.stderr if err else sys.stdout
    rows = (_as_dict(item) for item in items)

    if not pretty:
        for row in rows:
            print(json.dumps(row, ensure_ascii=False), file=stream, flush=True)
        return

    rows = list(rows)
    if not rows:
        print("No packages found", file=stream)
        return

    table = Table(title=title, show_header=True, header_style="bold")
    columns = columns or _columns_for(rows)
    for col in columns:
        table.add_column(col, justify="right" if col == 'bytes' else "left")
    for row in rows:
        table.add_row(*[_format_cell(col, row.get(col)) for col in columns])

    Console(file=stream).print(table)


def emit_record(record: Any, pretty: bool = False, title: Optional[str] = None) -> None:
    """Emit a single object: one JSON line, or a two column key/value table."""
    data = _as_dict(record)
    if not pretty:
        print(json.dumps(data, ensure_ascii=False), flush=True)
        return

    table = Table(title=title, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in data.items():
        # Multi-line text such as descriptions is shown in full
        text = value if isinstance(value, str) and '\n' in value else _format_cell(key, value, max_len=80)
        table.add_row(key, text)
    Console().print(table)


def _columns_for(rows: List[Dict[str, Any]]) -> List[str]:
    keys = set()
    for row in rows:
        keys.update(row.keys())

    columns = [col for col in ENTRY_COLUMNS if col in keys]
    columns.extend(sorted(keys - set(columns)))
    return columns[:MAX_COLUMNS]


def _format_cell(column: str, value: Any, max_len: int = 50) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'Yes' if value else 'No'
    if column == 'bytes' and isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)[:max_len]

    text = str(value)
    if len(text) > max_len:
        return text[:max_len - 3] + '...'
    return text


def emit_error(
    error: str,
    type: str = "error",
    context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Emit an error object to stderr.

    Args:
        error: Error message
        type: Error type (e.g. "not_found", "corrupt_index")
        context: Extra fields, such as the offending path
    """
    obj: Dict[str, Any] = {'error': error, 'type': type}
    if context:
        obj['context'] = context
    print(json.dumps(obj, ensure_ascii=False), file=sys.stderr, flush=True)


def emit_success(message: str, data: Optional[Dict] = None, pretty: bool = False) -> None:
    """Emit a success message, as JSON unless pretty."""
    if pretty:
        print(f"Success: {message}")
        return
    obj: Dict[str, Any] = {'success': True, 'message': message}
    if data:
        obj['data'] = data
    print(json.dumps(obj, ensure_ascii=False), flush=True)
