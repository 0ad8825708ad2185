import csv, json, re
from pathlib import Path
from typing import Dict, Any, Iterable, List, Optional

from app.classify.hs_data import HSEntry
from app.utils.logging_setup import get_logger

log = get_logger("hs_table")


def normalize_code(code: str) -> str:
    """Strip dots/spaces: '8517.12.00.00' -> '8517120000'."""
    return re.sub(r"\D", "", str(code or ""))


def _rate(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    s = str(value).strip().rstrip("%")
    try:
        r = float(s)
    except ValueError:
        return None
    # "19" and "19%" mean 0.19
    return r / 100.0 if r > 1 else r


def _keywords(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        parts = value
    else:
        parts = re.split(r"[;|,]", str(value))
    return [p.strip().lower() for p in parts if str(p).strip()]


def _first(keys: Dict[str, Any], *names: str) -> Any:
    # 0 is a real rate, so only None/"" fall through
    for n in names:
        v = keys.get(n)
        if v is not None and v != "":
            return v
    return None


def row_to_entry(row: Dict[str, Any]) -> HSEntry:
    keys = {str(k).lower().strip(): v for k, v in row.items()}
    code = keys.get("code") or keys.get("hs") or keys.get("hs_code") or keys.get("hts")
    desc = keys.get("description") or keys.get("descr") or keys.get("product description")
    duty = _first(keys, "duty_rate", "duty")
    vat = _first(keys, "vat_rate", "vat")
    category = (keys.get("category") or "").strip().lower() or None
    return HSEntry(
        code=normalize_code(code or ""),
        description=(desc or "").strip(),
        keywords=tuple(_keywords(keys.get("keywords"))),
        duty_rate=_rate(duty),
        vat_rate=_rate(vat),
        category=category,
    )


def iter_csv(path: Path) -> Iterable[HSEntry]:
    with path.open("r", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for row in reader:
            yield row_to_entry(row)


def iter_json(path: Path) -> Iterable[HSEntry]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("items") or data.get("rows") or data.get("data") or []
    for row in data:
        yield row_to_entry(row)


def read_hs_table(input_path: str) -> List[HSEntry]:
    """Read HS entries from CSV or JSON; rows without a code or description are skipped."""
    p = Path(input_path)
    if not p.exists():
        raise FileNotFoundError(p)
    it = iter_csv(p) if p.suffix.lower() == ".csv" else iter_json(p)
    out: List[HSEntry] = []
    skipped = 0
    for entry in it:
        if not entry.code or not entry.description:
            skipped += 1
            continue
        out.append(entry)
    log.info("Read %s HS rows from %s (skipped %s)", len(out), input_path, skipped)
    return out
