from __future__ import annotations

import gzip
import re
from pathlib import Path

import numpy as np

from dimensions import DIMLESS, DimensionedScalar, DimensionSet, parse_dimensions

_FLOAT_RE = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")


def _strip_foam_comments(text: str) -> str:
    text = re.sub(r"/\*.*?\*/", "", text, flags=re.S)
    text = re.sub(r"//.*?$", "", text, flags=re.M)
    return text


def resolve_foam_file(path: Path) -> Path | None:
    """
    Return `path`, or its gzip-compressed twin `path.gz`, whichever exists.
    """
    if path.is_file():
        return path
    gz = path.with_name(path.name + ".gz")
    if gz.is_file():
        return gz
    return None


def read_foam_text(path: Path) -> str:
    found = resolve_foam_file(path)
    if found is None:
        raise FileNotFoundError(f"Cannot find file: {path}")
    if found.suffix == ".gz":
        with gzip.open(found, "rt", encoding="utf-8", errors="ignore") as f:
            return _strip_foam_comments(f.read())
    return _strip_foam_comments(found.read_text(encoding="utf-8", errors="ignore"))


def _extract_brace_block(text: str, start_idx: int) -> tuple[str, int]:
    if start_idx < 0 or start_idx >= len(text) or text[start_idx] != "{":
        raise ValueError("start_idx must point to '{'")
    depth = 0
    i = start_idx
    while i < len(text):
        c = text[i]
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return text[start_idx : i + 1], i + 1
        i += 1
    raise ValueError("Unbalanced braces while parsing dictionary")


def _find_named_block(text: str, name: str) -> str | None:
    # Match: <name> { ... }
    m = re.search(r"(^|\s)" + re.escape(name) + r"\s*\{", text, flags=re.M)
    if not m:
        return None
    brace_idx = text.find("{", m.end() - 1)
    if brace_idx < 0:
        return None
    blk, _ = _extract_brace_block(text, brace_idx)
    return blk


def _top_level_entries(text: str) -> dict[str, str]:
    """
    Parse `key value;` entries at depth 0 of a dictionary body.

    Sub-dictionaries are skipped; a later duplicate key overrides an earlier one.
    """
    flat: list[str] = []
    depth = 0
    for ch in text:
        if ch == "{":
            depth += 1
            continue
        if ch == "}":
            depth -= 1
            if depth == 0:
                flat.append(";")
            continue
        if depth == 0:
            flat.append(ch)

    out: dict[str, str] = {}
    for chunk in "".join(flat).split(";"):
        lines = [ln for ln in chunk.splitlines() if not ln.strip().startswith("#")]
        s = " ".join(lines).strip()
        if not s:
            continue
        parts = s.split(None, 1)
        if len(parts) < 2:
            continue
        out[parts[0]] = parts[1].strip()
    return out


def parse_header(text: str) -> dict[str, str] | None:
    blk = _find_named_block(_strip_foam_comments(text), "FoamFile")
    if blk is None:
        return None
    entries = _top_level_entries(blk[1:-1])
    return {k: v.strip('"') for k, v in entries.items()}


def read_header(path: Path) -> dict[str, str] | None:
    """
    Read the FoamFile header of `path` (or `path.gz`). Returns None when the file
    is missing or carries no header.
    """
    if resolve_foam_file(path) is None:
        return None
    return parse_header(read_foam_text(path))


def _require_ascii(header: dict[str, str] | None, path: Path) -> None:
    if header is None:
        raise ValueError(f"Missing FoamFile header in {path}")
    fmt = header.get("format", "ascii")
    if fmt != "ascii":
        raise ValueError(f"Only ascii format is supported, {path} is {fmt!r}")


def _body(text: str) -> str:
    blk = _find_named_block(text, "FoamFile")
    if blk is None:
        return text
    idx = text.find(blk)
    return text[idx + len(blk) :]


def lookup_dimensioned_scalar(text: str, key: str, *, where: str = "dictionary") -> DimensionedScalar:
    """
    Look up a dimensioned scalar entry. Accepted spellings:

        rho rho [1 -3 0 0 0 0 0] 1000;
        rho [1 -3 0 0 0 0 0] 1000;
        rho 1000;                       (dimensionless)
    """
    entries = _top_level_entries(_body(_strip_foam_comments(text)))
    if key not in entries:
        raise KeyError(f"keyword {key} is undefined in dictionary {where}")
    raw = entries[key]
    m = re.fullmatch(r"(?:([A-Za-z_]\w*)\s+)?(\[[^\]]*\])?\s*(\S+)", raw)
    if not m or not _FLOAT_RE.fullmatch(m.group(3)):
        raise ValueError(f"Could not parse dimensioned scalar {key!r} from {raw!r} in {where}")
    name = m.group(1) or key
    dims = parse_dimensions(m.group(2)) if m.group(2) else DIMLESS
    return DimensionedScalar(name=name, dimensions=dims, value=float(m.group(3)))


def lookup_scalar(text: str, key: str, *, where: str = "dictionary") -> float:
    entries = _top_level_entries(_body(_strip_foam_comments(text)))
    if key not in entries:
        raise KeyError(f"keyword {key} is undefined in dictionary {where}")
    try:
        return float(entries[key])
    except ValueError as exc:
        raise ValueError(f"Entry {key!r} in {where} is not a scalar: {entries[key]!r}") from exc


def _match_paren(text: str, open_idx: int) -> int:
    depth = 0
    for i in range(open_idx, len(text)):
        ch = text[i]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
    raise ValueError("Unbalanced parentheses in list")


def _parse_values(body: str, kind: str, n: int, where: str) -> np.ndarray:
    if kind in {"scalar", "double", "float"}:
        arr = np.fromstring(body, sep=" ", dtype=float) if body.strip() else np.zeros((0,), dtype=float)
        if arr.size != n:
            raise ValueError(f"{where}: expected {n} scalars, got {arr.size}")
        return arr
    if kind == "vector":
        flat = body.replace("(", " ").replace(")", " ")
        arr = np.fromstring(flat, sep=" ", dtype=float) if flat.strip() else np.zeros((0,), dtype=float)
        if arr.size != 3 * n:
            raise ValueError(f"{where}: expected {n} vectors, got {arr.size / 3:g}")
        return arr.reshape(n, 3)
    raise ValueError(f"Unsupported field kind {kind!r} in {where}")


def parse_field_payload(payload: str, n: int, *, where: str) -> np.ndarray:
    """
    Parse a field value of the form `uniform <v>` or
    `nonuniform List<kind> N ( ... )` / `nonuniform List<kind> N{<v>}`
    into an (n,) or (n, 3) array.
    """
    payload = payload.strip()
    if payload.startswith("uniform"):
        rest = payload[len("uniform") :].strip()
        if rest.startswith("("):
            vals = np.fromstring(rest.strip("()"), sep=" ", dtype=float)
            if vals.size != 3:
                raise ValueError(f"Expected 3 components for uniform vector in {where}")
            return np.tile(vals[None, :], (n, 1))
        if not _FLOAT_RE.fullmatch(rest):
            raise ValueError(f"Could not parse uniform scalar in {where}")
        return np.full((n,), float(rest), dtype=float)

    m = re.match(r"nonuniform\s+List<\s*(\w+)\s*>\s*(\d+)\s*", payload)
    if not m:
        raise ValueError(f"Could not parse field value in {where}: {payload[:40]!r}")
    kind = m.group(1)
    count = int(m.group(2))
    if count != n:
        raise ValueError(f"{where}: list has {count} entries, mesh expects {n}")
    rest = payload[m.end() :]
    if rest.startswith("{"):
        close = rest.find("}")
        if close < 0:
            raise ValueError(f"Unterminated uniform list in {where}")
        single = rest[1:close]
        if kind == "vector":
            one = _parse_values(single, kind, 1, where)
            return np.tile(one, (n, 1))
        return np.full((n,), float(single), dtype=float)
    if not rest.startswith("("):
        raise ValueError(f"Could not find opening '(' for list in {where}")
    end = _match_paren(rest, 0)
    return _parse_values(rest[1:end], kind, n, where)


def read_dimensions(text: str, *, where: str) -> DimensionSet:
    m = re.search(r"^\s*dimensions\s+(\[[^\]]*\])\s*;", _body(text), flags=re.M)
    if not m:
        raise ValueError(f"Missing dimensions entry in {where}")
    return parse_dimensions(m.group(1))


def read_internal_field(path: Path, n_cells: int) -> tuple[DimensionSet, np.ndarray]:
    txt = read_foam_text(path)
    _require_ascii(parse_header(txt), path)
    dims = read_dimensions(txt, where=str(path))
    m = re.search(r"internalField\s+([^;]+);", txt)
    if not m:
        raise ValueError(f"Could not locate internalField in {path}")
    return dims, parse_field_payload(m.group(1), n_cells, where=str(path))


def read_boundary_values(path: Path, patch_sizes: dict[str, int]) -> dict[str, np.ndarray]:
    """
    Read the `value` entries of every patch in boundaryField. Patches with no
    `value` entry (e.g. empty) are left out of the result.
    """
    txt = read_foam_text(path)
    blk = _find_named_block(_body(txt), "boundaryField")
    if blk is None:
        raise ValueError(f"Could not locate boundaryField in {path}")
    inner = blk[1:-1]
    blocks: dict[str, str] = {}
    patterns: list[tuple[str, str]] = []
    pos = 0
    name_re = re.compile(r"(\"[^\"]*\"|[A-Za-z0-9_.:\-]+)\s*\{")
    while True:
        m = name_re.search(inner, pos)
        if not m:
            break
        patch_blk, pos = _extract_brace_block(inner, inner.find("{", m.end() - 1))
        if m.group(1).startswith('"'):
            # Quoted names are regular expressions over patch names.
            patterns.append((m.group(1).strip('"'), patch_blk))
        else:
            blocks[m.group(1)] = patch_blk

    out: dict[str, np.ndarray] = {}
    for name, size in patch_sizes.items():
        patch_blk = blocks.get(name)
        if patch_blk is None:
            patch_blk = next((b for pat, b in reversed(patterns) if re.fullmatch(pat, name)), None)
        if patch_blk is None:
            continue
        vm = re.search(r"(^|\s)value\s+([^;]+);", patch_blk)
        if not vm:
            continue
        out[name] = parse_field_payload(vm.group(2), size, where=f"{path} patch {name}")
    return out


def _read_list_body(path: Path) -> tuple[int, str]:
    txt = read_foam_text(path)
    _require_ascii(parse_header(txt), path)
    body = _body(txt)
    m = re.search(r"(\d+)\s*\(", body)
    if not m:
        raise ValueError(f"Could not parse list from {path}")
    open_idx = m.end() - 1
    end = _match_paren(body, open_idx)
    return int(m.group(1)), body[open_idx + 1 : end]


def read_label_list(path: Path) -> np.ndarray:
    n, body = _read_list_body(path)
    vals = np.fromstring(body, sep=" ", dtype=np.int64) if body.strip() else np.zeros((0,), dtype=np.int64)
    if vals.size != n:
        raise ValueError(f"{path}: expected {n} labels, got {vals.size}")
    return vals


def read_point_list(path: Path) -> np.ndarray:
    n, body = _read_list_body(path)
    return _parse_values(body, "vector", n, str(path))


def read_face_list(path: Path) -> list[np.ndarray]:
    n, body = _read_list_body(path)
    # Entries look like: 4(0 1 2 3)
    faces = [
        np.fromstring(m.group(2), sep=" ", dtype=np.int64)
        for m in re.finditer(r"(\d+)\s*\(([^)]*)\)", body)
    ]
    if len(faces) != n:
        raise ValueError(f"{path}: expected {n} faces, got {len(faces)}")
    return faces


def read_boundary_patches(path: Path) -> list[tuple[str, str, int, int]]:
    """
    Returns (name, type, startFace, nFaces) for every patch of a polyMesh
    boundary file, in file order.
    """
    txt = read_foam_text(path)
    body = _body(txt)
    m = re.search(r"(\d+)\s*\(", body)
    if not m:
        raise ValueError(f"Could not parse patch list from {path}")
    open_idx = m.end() - 1
    inner = body[open_idx + 1 : _match_paren(body, open_idx)]
    out: list[tuple[str, str, int, int]] = []
    pos = 0
    name_re = re.compile(r"([A-Za-z0-9_.:\-]+)\s*\{")
    while True:
        pm = name_re.search(inner, pos)
        if not pm:
            break
        blk, pos = _extract_brace_block(inner, inner.find("{", pm.end() - 1))
        entries = _top_level_entries(blk[1:-1])
        try:
            start = int(entries["startFace"])
            size = int(entries["nFaces"])
        except (KeyError, ValueError) as exc:
            raise ValueError(f"Patch {pm.group(1)} in {path} lacks startFace/nFaces") from exc
        out.append((pm.group(1), entries.get("type", "patch"), start, size))
    if len(out) != int(m.group(1)):
        raise ValueError(f"{path}: expected {m.group(1)} patches, got {len(out)}")
    return out


def n_cells_from_owner(owner_path: Path, owner: np.ndarray, neighbour: np.ndarray) -> int:
    header = read_header(owner_path) or {}
    note = header.get("note", "")
    m = re.search(r"nCells:\s*(\d+)", note)
    if m:
        return int(m.group(1))
    max_val = int(owner.max()) if owner.size else -1
    if neighbour.size:
        max_val = max(max_val, int(neighbour.max()))
    return max_val + 1
