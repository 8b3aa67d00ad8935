import os
import asyncio
import numpy as np
import pandas as pd
import csv
from pathlib import Path
from typing import List, Optional, Tuple
import sys
from loguru import logger

from bizlicense.models import BusinessProfile, ReportResult, RequirementLevel
from bizlicense.catalog import Catalog, load_catalog
from bizlicense.errors import CatalogLoadError, InvalidProfileError
from bizlicense.matchers.requirement_matcher import match_requirements
from bizlicense.profile_validation import validate_profile
from bizlicense.report_generator import generate_report
from bizlicense.config import INPUT_CSV, OUTPUT_CSV, REPORTS_DIR, BATCH_SIZE, LOG_LEVEL, CATALOG_PATH

OUTPUT_COLUMNS = ["Name", "matched_ids", "mandatory", "recommended", "optional", "generated_by", "error"]

# One parsed CSV row: (name, profile or None, validation error or None)
ProfileRow = Tuple[str, Optional[BusinessProfile], Optional[str]]


def _to_bool(value):
    """Map common CSV spellings of booleans; anything else is left for validation to reject."""
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
        return value
    if pd.isna(value):
        return None
    if isinstance(value, (int, float, np.integer, np.floating)) and value in (0, 1):
        return bool(value)
    return value


def _to_number(value):
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    try:
        number = float(value)
    except (ValueError, TypeError):
        return value
    return int(number) if number.is_integer() else number


def load_profiles_from_csv(file_path: str, nrows: int = None) -> List[ProfileRow]:
    """Load business rows from CSV and validate each into a BusinessProfile."""
    df = pd.read_csv(file_path, nrows=nrows)
    rows = []
    for idx, row in df.iterrows():
        name = str(row["name"]) if "name" in row.index and pd.notna(row["name"]) else f"row-{idx}"
        payload = {
            "area_m2": _to_number(row.get("area_m2")),
            "seats": _to_number(row.get("seats")),
            "gas": _to_bool(row.get("gas")),
            "serves_meat": _to_bool(row.get("serves_meat")),
            "deliveries": _to_bool(row.get("deliveries")),
        }
        try:
            rows.append((name, validate_profile(payload), None))
        except InvalidProfileError as e:
            logger.warning(f"Skipping '{name}': {e.message}")
            rows.append((name, None, e.message))
    return rows


def batch_iter(rows: List[ProfileRow], batch_size: int):
    """
    Yield index and row slices of size `batch_size` for batched processing.
    """
    n = len(rows)
    for i in range(0, n, batch_size):
        yield i, rows[i:i+batch_size]


async def process_profile(profile: BusinessProfile, catalog: Catalog) -> ReportResult:
    """
    Run a single business through matching and report generation.

    Args:
        profile (BusinessProfile): Validated business profile.
        catalog (Catalog): Requirement catalog loaded at startup.

    Returns:
        ReportResult: Report and matched requirements for this business.
    """
    matched = match_requirements(profile, catalog)
    return await generate_report(profile, matched, total_checked=len(catalog))


def _safe_filename(name: str) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in name) or "business"


def report_filename(row_idx: int, name: str) -> str:
    """Report file name for a row; the row index keeps names that sanitize alike apart."""
    return f"{row_idx:04d}_{_safe_filename(name)}.md"


def summary_row(name: str, result: Optional[ReportResult], error: Optional[str]) -> list:
    if result is None:
        return [name, "", 0, 0, 0, "", error]
    levels = [r.level for r in result.matched_requirements]
    return [
        name,
        ";".join(r.id for r in result.matched_requirements),
        levels.count(RequirementLevel.MANDATORY),
        levels.count(RequirementLevel.RECOMMENDED),
        levels.count(RequirementLevel.OPTIONAL),
        result.generated_by,
        "",
    ]


async def run_batch(
    catalog: Catalog,
    input_path: str,
    output_path: str,
    reports_dir: str,
    batch_size: int = BATCH_SIZE,
):
    """
    Match every business in the input CSV and write reports plus a summary CSV.

    - Validates rows up front; invalid rows are recorded with their error.
    - Processes each batch concurrently with asyncio.gather.
    - Writes results incrementally to the output CSV.
    """
    rows = load_profiles_from_csv(input_path)
    Path(reports_dir).mkdir(parents=True, exist_ok=True)

    if os.path.exists(output_path):
        os.remove(output_path)
    with open(output_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(OUTPUT_COLUMNS)

    for start_idx, batch_rows in batch_iter(rows, batch_size):
        logger.info(f"Processing rows {start_idx}..{start_idx + len(batch_rows) - 1}")

        valid = [(name, profile) for name, profile, _ in batch_rows if profile is not None]
        results = await asyncio.gather(*[process_profile(profile, catalog) for _, profile in valid])
        pending = iter(results)

        with open(output_path, "a", newline="") as f:
            writer = csv.writer(f)
            for offset, (name, profile, error) in enumerate(batch_rows):
                result = next(pending) if profile is not None else None
                writer.writerow(summary_row(name, result, error))
                if result is not None:
                    report_path = Path(reports_dir) / report_filename(start_idx + offset, name)
                    report_path.write_text(result.report, encoding="utf-8")


async def main():
    """
    Load the catalog once, then run the batch over INPUT_CSV.

    A catalog that cannot be loaded stops the run before any row is processed.
    """
    # Initialize logs
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, level=LOG_LEVEL, format="<green>{time:HH:mm:ss}</green> | <level>{message}</level>")

    try:
        catalog = load_catalog(CATALOG_PATH)
    except CatalogLoadError as e:
        logger.error(f"❌ {e}")
        raise SystemExit(1)

    await run_batch(catalog, INPUT_CSV, OUTPUT_CSV, REPORTS_DIR)
    logger.info(f"✅ Wrote {OUTPUT_CSV} and reports to {REPORTS_DIR}/")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "serve":
        from bizlicense.api import serve
        serve()
    else:
        asyncio.run(main())
