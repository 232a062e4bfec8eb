"""
Manual File Adapter
===================

Reads hand-curated product rows from CSV or JSON files. No network
access and no rate limiting.
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any

from product_ingest.core.schema import CandidateProduct
from product_ingest.ingestion.adapters.base import ProviderAdapter, ScrapeResult
from product_ingest.ingestion.errors import UnsupportedFileError

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "name",
    "description",
    "price",
    "currency",
    "images",
    "vendor_name",
    "vendor_url",
    "category",
    "source_url",
    "external_id",
]

TEMPLATE_ROWS = [
    {
        "name": "Gold Candlestick Centerpiece",
        "description": "Elegant gold candlestick for wedding tables",
        "price": "45.99",
        "currency": "USD",
        "images": "https://example.com/image1.jpg,https://example.com/image2.jpg",
        "vendor_name": "Bella Decor",
        "vendor_url": "https://belladecor.com",
        "category": "Centerpieces",
        "source_url": "https://belladecor.com/product/123",
        "external_id": "bella-decor-123",
    },
    {
        "name": "Ivory Tablecloth Linen",
        "description": "Premium ivory linen tablecloth 90x120",
        "price": "89.99",
        "currency": "USD",
        "images": "https://example.com/linen1.jpg",
        "vendor_name": "Premier Linens",
        "vendor_url": "https://premierlinens.com",
        "category": "Linens",
        "source_url": "https://premierlinens.com/product/456",
        "external_id": "premier-linens-456",
    },
    {
        "name": "Crystal Votive Holder",
        "description": "Clear crystal votive candle holder",
        "price": "12.50",
        "currency": "USD",
        "images": "https://example.com/votive1.jpg",
        "vendor_name": "Crystal Co",
        "vendor_url": "https://crystalco.com",
        "category": "Decor",
        "source_url": "https://crystalco.com/product/789",
        "external_id": "crystal-co-789",
    },
]


class ManualFileAdapter(ProviderAdapter):
    """
    Adapter for CSV/JSON product files.

    Each row is processed independently; a bad row is reported as
    "Row N: <message>" and the rest of the file still loads.
    """

    ADAPTER_NAME = "manual"
    ADAPTER_VERSION = "1.0.0"

    def validate_config(self) -> None:
        # No credentials needed
        pass

    async def scrape(self, query: str | None = None) -> ScrapeResult:
        """Load the file at ``query``."""
        if not query:
            result = ScrapeResult()
            result.errors.append("Manual import requires a file path")
            return result

        try:
            return self.load(query)
        except (OSError, ValueError, UnsupportedFileError) as e:
            logger.error(f"Manual import failed: {e}")
            result = ScrapeResult()
            result.errors.append(str(e))
            return result

    def load(self, path: Path | str) -> ScrapeResult:
        """
        Parse a CSV or JSON file into candidates.

        Raises:
            FileNotFoundError: If the file does not exist
            UnsupportedFileError: If the extension is not .csv or .json
            ValueError: If a JSON file is neither an array nor a products wrapper
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        ext = path.suffix.lower()
        if ext == ".json":
            rows = self._read_json(path)
        elif ext == ".csv":
            rows = self._read_csv(path)
        else:
            raise UnsupportedFileError(f"Unsupported file format: {ext}. Use .json or .csv")

        logger.info(f"Importing {len(rows)} rows from {path}")

        result = ScrapeResult()
        for row_number, row in enumerate(rows, start=1):
            label = _row_label(row, row_number)
            try:
                candidate = self.process_row(row, row_number)
                if self.validate_product(candidate):
                    result.candidates.append(candidate)
                    result.stats.successful += 1
                else:
                    result.errors.append(f"{label}: Invalid product data")
                    result.stats.failed += 1
            except (TypeError, ValueError) as e:
                # pydantic ValidationError is a ValueError
                logger.warning(f"{label} failed: {e}")
                result.errors.append(f"{label}: {e}")
                result.stats.failed += 1

            result.stats.total += 1

        result.success = result.stats.successful > 0
        logger.info(
            f"Import complete: {result.stats.successful}/{result.stats.total} successful"
        )
        return result

    def process_row(self, row: Any, row_number: int) -> CandidateProduct:
        """
        Convert one file row to a candidate.

        Text cells may hold numbers in JSON files; they are read as strings.

        Raises:
            ValueError: If the row is not an object, has no usable image or
                has a non-positive price
        """
        if not isinstance(row, dict):
            raise ValueError("expected an object")

        images = self.normalizer.parse_images(row.get("images"))
        if not images:
            raise ValueError("At least one image URL is required")

        price = self.normalize_price(row.get("price"))
        if price <= 0:
            raise ValueError("Price must be greater than 0")

        return CandidateProduct(
            source=self.ADAPTER_NAME,
            external_id=_text(row, "external_id") or f"manual-{row_number}",
            source_url=_text(row, "source_url"),
            name=_text(row, "name"),
            description=self.clean_description(_text(row, "description")),
            price=price,
            currency=_text(row, "currency") or "USD",
            images=images,
            vendor_name=_text(row, "vendor_name"),
            vendor_url=_text(row, "vendor_url") or None,
            raw_category=_text(row, "category") or None,
            metadata={"imported_row": row_number},
        )

    def _read_json(self, path: Path) -> list[Any]:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return extract_product_rows(data)

    def _read_csv(self, path: Path) -> list[dict[str, Any]]:
        # utf-8-sig drops the BOM spreadsheet exports put before the header
        with open(path, newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f)
            # Skip blank lines
            return [row for row in reader if any(str(v or "").strip() for v in row.values())]

    @staticmethod
    def generate_template(path: Path | str) -> Path:
        """
        Write a CSV import template with sample rows.

        Fill in ``external_id`` for real rows. Without it a row is keyed as
        ``manual-<row number>``, so row 1 of any later file counts as a
        duplicate of row 1 of an earlier one.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS, quoting=csv.QUOTE_MINIMAL)
            writer.writeheader()
            writer.writerows(TEMPLATE_ROWS)
        logger.info(f"Template generated: {path}")
        return path


def _text(row: dict[str, Any], key: str) -> str:
    value = row.get(key)
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def _row_label(row: Any, row_number: int) -> str:
    """``Row N``, with the product name in parentheses when the row has one."""
    name = _text(row, "name") if isinstance(row, dict) else ""
    return f"Row {row_number} ({name})" if name else f"Row {row_number}"


def extract_product_rows(data: Any) -> list[Any]:
    """
    Return the product list from parsed JSON.

    Accepts a bare array or an object with a "products" array.
    """
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("products"), list):
        return data["products"]
    raise ValueError('JSON must be an array or contain a "products" array')
