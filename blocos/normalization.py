"""Utilities for reading and normalising the tabular block sources."""
from __future__ import annotations

import io
import logging
import math
import re
import unicodedata
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, List, Mapping, Optional

from .models import BlockRecord, PresentationMode
from .neighborhoods import anchor_for, region_for

LOGGER = logging.getLogger(__name__)

DATE_FORMATS = ("%d/%m/%Y", "%Y-%m-%d", "%d.%m.%Y")
TIME_FORMATS = ("%H:%M:%S", "%H:%M")

# Day zero of spreadsheet serial dates (accounts for the 1900 leap-year bug).
EXCEL_EPOCH = date(1899, 12, 30)

_PUNCTUATION = re.compile(r"[.,!?()]")
_WHITESPACE = re.compile(r"\s+")
_THOUSANDS = re.compile(r"\d{1,3}(\.\d{3})+")

MIN_PARTIAL_HEADER = 4

ACCEPTED_BLOCK_SITUATIONS = ("ATIVO",)

ACCEPTED_PARADE_SITUATIONS = (
    "CADASTRO PRELIMINAR",
    "CADASTRO NÃO EFETIVADO",
    "CADASTRO PRELIMINAR UPLOAD",
    "AUTORIZADO",
    "CADASTRO EFETIVADO",
)

SPREADSHEET_ALIASES = {
    "id": ("Nº", "N", "ID", "Numero"),
    "name": ("Nome do Bloco", "Nome", "Bloco"),
    "date": ("Data do Desfile", "Data"),
    "relative_date": ("Data Relativa",),
    "neighborhood": ("Bairro",),
    "subprefecture": ("Subprefeitura",),
    "attendance": ("Público Estimado", "Publico Estimado", "Publico"),
    "concentration_place": (
        "Local da Concentração",
        "Local da Concentracao",
        "Concentração",
    ),
    "concentration_time": ("Hr. Concentração", "Concentração", "Concentracao"),
    "start_time": ("Hr. Início", "Hr. Inicio", "Hora Início", "Inicio"),
    "end_time": ("Hr. Término", "Hr. Termino", "Hora Término", "Termino"),
    "route_description": ("Percurso Detalhado", "Percurso"),
    "dispersal_place": ("Local da Dispersão", "Local da Dispersao", "Dispersão"),
    "presentation": (
        "Forma de apresentação",
        "Forma de apresentacao",
        "Forma Apresentação",
        "Tipo",
    ),
    "structure": ("Estrutura",),
    "status": ("Situação do desfile", "Situacao do desfile", "Situação", "Status"),
}


class NormalizationError(RuntimeError):
    """Raised when a source cannot be normalised."""


def normalize_name(raw: str) -> str:
    """Canonical form of a block name used to compare names across sources.

    The steps run in a fixed order: the HTML ampersand entity is decoded
    before uppercasing (so ``&AMP;`` never appears), accents are stripped
    after uppercasing, and ``&`` becomes the Portuguese conjunction ``E``.
    """

    text = re.sub("&amp;", "&", raw, flags=re.IGNORECASE)
    text = text.upper()
    text = unicodedata.normalize("NFD", text)
    text = "".join(ch for ch in text if not _is_mark(ch))
    text = text.replace("&", "E")
    text = _PUNCTUATION.sub("", text)
    text = text.replace("-", " ")
    return _WHITESPACE.sub(" ", text).strip()


def _is_mark(ch: str) -> bool:
    return "\u0300" <= ch <= "\u036f"


def _fold(text: str) -> str:
    folded = unicodedata.normalize("NFD", text.lower())
    return "".join(ch for ch in folded if not _is_mark(ch)).strip()


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def resolve_field(row: Mapping[str, Any], aliases: Iterable[str]) -> Any:
    """Look a value up under any of ``aliases``, tolerating header drift.

    Exact and accent/case-insensitive matches win over partial ones; partial
    matches only consider headers and aliases of at least four characters so
    short aliases such as ``N`` do not capture unrelated columns.
    """

    aliases = tuple(aliases)
    folded_keys = [(key, _fold(str(key))) for key in row]
    for alias in aliases:
        if alias in row and not _is_blank(row[alias]):
            return row[alias]
        wanted = _fold(alias)
        for key, folded in folded_keys:
            if folded == wanted and not _is_blank(row[key]):
                return row[key]

    for alias in aliases:
        wanted = _fold(alias)
        if len(wanted) < MIN_PARTIAL_HEADER:
            continue
        for key, folded in folded_keys:
            if len(folded) < MIN_PARTIAL_HEADER or _is_blank(row[key]):
                continue
            if wanted in folded or folded in wanted:
                return row[key]
    return None


def parse_date(raw: Any) -> Optional[date]:
    if _is_blank(raw):
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, (int, float)):
        try:
            return EXCEL_EPOCH + timedelta(days=int(raw))
        except (OverflowError, ValueError) as exc:
            raise NormalizationError(f"Date serial out of range: {raw}") from exc
    text = str(raw).strip()
    for pattern in DATE_FORMATS:
        try:
            return datetime.strptime(text, pattern).date()
        except ValueError:
            continue
    raise NormalizationError(f"Unrecognised date format: {raw}")


def parse_time(raw: Any) -> Optional[time]:
    if _is_blank(raw):
        return None
    if isinstance(raw, datetime):
        return raw.time()
    if isinstance(raw, time):
        return raw
    if isinstance(raw, (int, float)):
        # Spreadsheet times are fractions of a day.
        try:
            seconds = round(float(raw) * 24 * 60 * 60) % (24 * 60 * 60)
        except (OverflowError, ValueError) as exc:
            raise NormalizationError(f"Time fraction out of range: {raw}") from exc
        return time(seconds // 3600, (seconds % 3600) // 60, seconds % 60)
    text = str(raw).strip()
    for pattern in TIME_FORMATS:
        try:
            return datetime.strptime(text, pattern).time()
        except ValueError:
            continue
    raise NormalizationError(f"Unrecognised time format: {raw}")


def parse_attendance(raw: Any) -> int:
    if _is_blank(raw):
        return 0
    if isinstance(raw, (int, float)):
        try:
            return max(int(raw), 0)
        except (OverflowError, ValueError) as exc:
            raise NormalizationError(f"Attendance out of range: {raw}") from exc
    text = str(raw).strip().replace(" ", "")
    if _THOUSANDS.fullmatch(text):
        text = text.replace(".", "")
    try:
        value = int(float(text.replace(",", ".")))
    except ValueError:
        return 0
    except OverflowError as exc:
        raise NormalizationError(f"Attendance out of range: {raw}") from exc
    return max(value, 0)


def parse_presentation(raw: Any) -> PresentationMode:
    if not _is_blank(raw) and "DESLOCAMENTO" in str(raw).upper():
        return PresentationMode.MOVING
    return PresentationMode.STATIONARY


def _text(raw: Any) -> str:
    return "" if _is_blank(raw) else str(raw).strip()


def _lenient_time(raw: Any) -> Optional[time]:
    try:
        return parse_time(raw)
    except NormalizationError:
        LOGGER.debug("Ignoring unparseable time %r", raw)
        return None


def _block_id(raw: Any, index: int):
    if _is_blank(raw):
        return index + 1
    try:
        return int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return str(raw).strip()


def normalise_row(row: Mapping[str, Any], index: int = 0) -> BlockRecord | None:
    """Build a block from a spreadsheet row; rows without a name are dropped."""

    def field(name: str) -> Any:
        return resolve_field(row, SPREADSHEET_ALIASES[name])

    name = _text(field("name"))
    if not name:
        return None

    neighborhood = _text(field("neighborhood")).upper()
    subprefecture = _text(field("subprefecture")).upper()
    return BlockRecord(
        id=_block_id(field("id"), index),
        name=name,
        date=parse_date(field("date")),
        relative_date=_text(field("relative_date")),
        neighborhood=neighborhood,
        subprefecture=subprefecture,
        region=region_for(subprefecture),
        attendance=parse_attendance(field("attendance")),
        concentration_place=_text(field("concentration_place")),
        concentration_time=_lenient_time(field("concentration_time")),
        start_time=_lenient_time(field("start_time")),
        end_time=_lenient_time(field("end_time")),
        route_description=_text(field("route_description")),
        dispersal_place=_text(field("dispersal_place")),
        presentation=parse_presentation(field("presentation")),
        structure=_text(field("structure")),
        status=_text(field("status")),
        anchor=anchor_for(neighborhood, subprefecture),
    )


def rows_to_blocks(rows: Iterable[Mapping[str, Any]]) -> List[BlockRecord]:
    blocks: List[BlockRecord] = []
    for index, row in enumerate(rows):
        try:
            block = normalise_row(row, index)
        except NormalizationError as exc:
            LOGGER.warning("Dropping row %d: %s", index + 1, exc)
            continue
        if block is not None:
            blocks.append(block)
    return blocks


def load_spreadsheet(data: bytes) -> List[BlockRecord]:
    """Read the first sheet of an XLSX workbook into block records."""

    import pandas as pd

    try:
        frame = pd.read_excel(io.BytesIO(data), sheet_name=0)
    except Exception as exc:  # pandas/openpyxl raise a wide range of errors
        raise NormalizationError(f"Unreadable spreadsheet: {exc}") from exc

    LOGGER.debug("Spreadsheet columns: %s", list(frame.columns))
    frame = frame.astype(object).where(frame.notna(), None)
    return rows_to_blocks(frame.to_dict(orient="records"))


def _accepted(entry: Mapping[str, Any]) -> bool:
    block_situation = _text(entry.get("SituacaoBloco")).upper()
    parade_situation = _text(entry.get("SituacaoDesfile")).upper()
    # exact: a substring test would let "INATIVO" through
    active = block_situation in ACCEPTED_BLOCK_SITUATIONS
    parade_ok = any(s in parade_situation for s in ACCEPTED_PARADE_SITUATIONS)
    return active and parade_ok


def _api_id(raw: Any):
    digits = re.sub(r"\D", "", _text(raw))
    return int(digits) if digits else _text(raw)


def normalise_api_entry(entry: Mapping[str, Any]) -> BlockRecord | None:
    name = _text(entry.get("NomeBloco"))
    if not name:
        return None
    neighborhood = _text(entry.get("Bairro")).upper()
    subprefecture = _text(entry.get("Subprefeitura")).upper()
    route = _text(entry.get("Percurso")).replace("|", " | ")
    return BlockRecord(
        id=_api_id(entry.get("Inscricao")),
        name=name,
        date=parse_date(entry.get("Data")),
        relative_date=_text(entry.get("DataRelativa")),
        neighborhood=neighborhood,
        subprefecture=subprefecture,
        region=_text(entry.get("Regiao")) or region_for(subprefecture),
        attendance=parse_attendance(entry.get("PublicoEstimado")),
        concentration_place=_text(entry.get("LocalConcentracao")),
        concentration_time=_lenient_time(entry.get("Concentracao")),
        start_time=_lenient_time(entry.get("InicioDesfile")),
        end_time=_lenient_time(entry.get("TerminoDesfile")),
        route_description=_WHITESPACE.sub(" ", route).strip(),
        dispersal_place=_text(entry.get("LocalDispersao")),
        presentation=parse_presentation(entry.get("FormaApresentacao")),
        structure=_text(entry.get("Estrutura")),
        status=_text(entry.get("SituacaoDesfile")),
        anchor=anchor_for(neighborhood, subprefecture),
    )


def parse_api_payload(payload: Any) -> List[BlockRecord]:
    """Convert the registration API response, keeping authorised blocks only."""

    if not isinstance(payload, Mapping) or payload.get("status") != "success":
        raise NormalizationError("Unexpected API response status")
    entries = payload.get("dados")
    if not isinstance(entries, list):
        raise NormalizationError("API response has no block list")

    accepted = [entry for entry in entries if isinstance(entry, Mapping) and _accepted(entry)]
    LOGGER.info("API blocks: %d total, %d accepted", len(entries), len(accepted))

    blocks: List[BlockRecord] = []
    for entry in accepted:
        try:
            block = normalise_api_entry(entry)
        except NormalizationError as exc:
            LOGGER.warning("Dropping API block %s: %s", entry.get("Inscricao"), exc)
            continue
        if block is not None:
            blocks.append(block)
    return blocks
