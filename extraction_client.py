"""Claude API client that turns a receipt photo into a draft ExtractedReceiptData."""

import base64
import io
import json
import logging
import re
import time
import uuid
from datetime import date
from typing import Callable, Optional

import anthropic
from PIL import Image, ImageOps, UnidentifiedImageError

import config
import currency
from models import ExtractedReceiptData, ReceiptItem
from pdf_processor import PDFProcessor, is_pdf
from retry import RetryPolicy, call_with_retry
from scale_correction import ScaleThresholds, correct_scale

logger = logging.getLogger(__name__)

# Maximum image size for Claude API (5MB)
MAX_IMAGE_SIZE = 5 * 1024 * 1024
MAX_IMAGE_DIMENSION = 7500  # Claude limit is 8000, leave some margin

# Phone photos of long delivery receipts can be very tall
Image.MAX_IMAGE_PIXELS = 300000000

TRANSIENT_STATUS_CODES = {429, 502, 503, 504, 529}

BUSY_MESSAGE = "Gagal menghubungi AI. Model sedang sibuk, silakan coba lagi sebentar lagi."
PARSE_FAILED_MESSAGE = "Gagal menganalisa struk. Pastikan gambar jelas dan coba lagi."
UNREADABLE_FILE_MESSAGE = "File tidak bisa dibaca. Upload gambar PNG/JPG atau PDF."

MONTHS_ID = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]

REQUIRED_FIELDS = [
    "merchantName", "date", "items", "subtotal",
    "totalDiscount", "deliveryFee", "serviceFee", "tax",
]

RECEIPT_SCHEMA = {
    "type": "object",
    "properties": {
        "merchantName": {"type": "string", "description": "Name of the restaurant or merchant"},
        "date": {"type": "string", "description": "Date of order in DD Month YYYY format"},
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "price": {
                        "type": "number",
                        "description": "Total price for this line item (unit price * quantity)",
                    },
                    "quantity": {"type": "integer"},
                },
                "required": ["name", "price", "quantity"],
            },
        },
        "subtotal": {"type": "number"},
        "totalDiscount": {"type": "number"},
        "deliveryFee": {"type": "number"},
        "serviceFee": {"type": "number"},
        "tax": {"type": "number"},
    },
    "required": REQUIRED_FIELDS,
}

EXTRACTION_PROMPT = f"""Analyze this food delivery receipt image. Extract the following details:
1. The Merchant/Restaurant Name.
2. The Date of the order (format: DD Month YYYY, e.g., 10 December 2025).
3. A list of items ordered. If an item has a quantity > 1 (e.g., "2x Nasi Goreng"), list it as a single entry with quantity 2 and the line total as price.
4. The Subtotal (total price of items before discounts/fees).
5. Total Discount (sum of all promo codes, item discounts, delivery discounts). Return as a positive number.
6. Delivery Fee.
7. Service/Platform/Packaging Fees (sum them up).
8. Tax amount (the amount in currency, not the percentage).

CURRENCY NOTATION (Indonesian Rupiah):
- A dot is the THOUSANDS separator: "15.000" means fifteen thousand (15000).
- A comma is the DECIMAL separator: "15.000,50" means 15000.5.
- Do not round values and do not drop trailing zeros.

Respond ONLY with a single raw JSON object matching this schema (no markdown code blocks, no explanation):
{json.dumps(RECEIPT_SCHEMA, indent=2)}"""


class InvalidUploadError(ValueError):
    """The uploaded file cannot be sent for extraction."""


class ExtractionError(Exception):
    """Extraction failed; ``message`` is safe to show to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def is_transient_error(error: BaseException) -> bool:
    """True for errors that a later attempt may not hit (overload, rate limit, network)."""
    if isinstance(error, anthropic.APIConnectionError):
        return True
    if isinstance(error, anthropic.APIStatusError):
        if error.status_code in TRANSIENT_STATUS_CODES:
            return True
    text = str(error).lower()
    return "overloaded" in text or "unavailable" in text


def friendly_message(error: BaseException) -> str:
    """User-facing text for an API failure."""
    if is_transient_error(error):
        return BUSY_MESSAGE
    if isinstance(error, anthropic.APIStatusError):
        body = error.body if isinstance(error.body, dict) else {}
        detail = body.get("error", {})
        if isinstance(detail, dict) and detail.get("message"):
            return f"AI Error: {detail['message']}"
    return f"AI Error: {error}" if str(error) else BUSY_MESSAGE


def today_label(today: Optional[date] = None) -> str:
    """Format a date the way the prompt asks for, e.g. ``10 Desember 2025``."""
    today = today or date.today()
    return f"{today.day} {MONTHS_ID[today.month - 1]} {today.year}"


def extract_json_object(text: str) -> str:
    """Extract a JSON object from text by finding balanced braces.

    Args:
        text: Text containing JSON.

    Returns:
        Extracted JSON string or empty string if not found.
    """
    start_idx = text.find("{")
    if start_idx == -1:
        return ""

    brace_count = 0
    in_string = False
    escape_next = False

    for i, char in enumerate(text[start_idx:], start_idx):
        if escape_next:
            escape_next = False
            continue
        if char == "\\" and in_string:
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "{":
            brace_count += 1
        elif char == "}":
            brace_count -= 1
            if brace_count == 0:
                return text[start_idx:i + 1]

    return ""


def parse_response(response_text: str) -> dict:
    """Parse the model reply into a dict.

    Strips a surrounding code fence, then falls back to the first balanced
    object and a trailing-comma cleanup.

    Raises:
        ExtractionError: If no JSON object can be recovered.
    """
    cleaned = response_text.strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned)
        cleaned = re.sub(r"\s*```$", "", cleaned)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        json_str = extract_json_object(cleaned)
        if not json_str:
            logger.error(f"No JSON found in response: {response_text[:200]}")
            raise ExtractionError(PARSE_FAILED_MESSAGE)
        json_str = re.sub(r",\s*}", "}", json_str)
        json_str = re.sub(r",\s*]", "]", json_str)
        try:
            parsed = json.loads(json_str)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON: {e}. Content: {json_str[:200]}")
            raise ExtractionError(PARSE_FAILED_MESSAGE) from e

    if not isinstance(parsed, dict):
        logger.error(f"Expected a JSON object, got {type(parsed).__name__}")
        raise ExtractionError(PARSE_FAILED_MESSAGE)
    return parsed


def _to_amount(value) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return currency.parse(value)


def _to_quantity(value) -> int:
    try:
        return max(int(value), 1)
    except (TypeError, ValueError):
        return 1


def build_receipt_data(parsed: dict, id_token: str, today: Optional[date] = None) -> ExtractedReceiptData:
    """Build a draft receipt from parsed JSON, defaulting anything missing.

    Args:
        parsed: Parsed JSON from the model.
        id_token: Suffix that makes item ids unique to this extraction.
        today: Date used when the receipt date is missing.

    Returns:
        ExtractedReceiptData for the user to check.
    """
    missing = [name for name in REQUIRED_FIELDS if parsed.get(name) is None]
    if missing:
        logger.warning(f"Model reply is missing fields: {', '.join(missing)}")

    raw_items = parsed.get("items") or []
    if not isinstance(raw_items, list):
        logger.warning(f"Ignoring non-list items field: {raw_items!r}")
        raw_items = []

    items = []
    for index, item_data in enumerate(raw_items):
        if not isinstance(item_data, dict):
            logger.warning(f"Skipping malformed item: {item_data!r}")
            continue
        items.append(
            ReceiptItem(
                id=f"item-{index}-{id_token}",
                name=str(item_data.get("name") or "Unknown"),
                price=_to_amount(item_data.get("price")),
                quantity=_to_quantity(item_data.get("quantity", 1)),
            )
        )

    return ExtractedReceiptData(
        merchant_name=str(parsed.get("merchantName") or "Unknown Merchant"),
        date=str(parsed.get("date") or today_label(today)),
        items=tuple(items),
        subtotal=_to_amount(parsed.get("subtotal")),
        total_discount=abs(_to_amount(parsed.get("totalDiscount"))),
        delivery_fee=_to_amount(parsed.get("deliveryFee")),
        service_fee=_to_amount(parsed.get("serviceFee")),
        tax=_to_amount(parsed.get("tax")),
    )


class ReceiptExtractionClient:
    """Client for Claude API with receipt extraction capabilities."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = config.MODEL,
        retry_policy: Optional[RetryPolicy] = None,
        max_tokens: int = config.MAX_TOKENS,
        scale_thresholds: Optional[ScaleThresholds] = None,
        client=None,
        pdf_processor: Optional[PDFProcessor] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the extraction client.

        Args:
            api_key: Anthropic API key, defaults to ANTHROPIC_API_KEY.
            model: Model to use for extraction.
            retry_policy: Backoff for transient failures.
            max_tokens: Maximum tokens in the reply.
            scale_thresholds: Limits for the scale correction stage.
            client: Pre-built Anthropic client, mainly for tests.
            pdf_processor: Renderer for PDF uploads.
            sleep: Delay function used between retries.
        """
        # Retries are handled here so the SDK must not retry on its own
        self.client = client or anthropic.Anthropic(
            api_key=api_key or config.ANTHROPIC_API_KEY,
            max_retries=0,
        )
        self.model = model
        self.retry_policy = retry_policy or RetryPolicy.from_config()
        self.max_tokens = max_tokens
        self.scale_thresholds = scale_thresholds or ScaleThresholds.from_config()
        self.pdf_processor = pdf_processor or PDFProcessor(dpi=config.PDF_DPI, max_pages=config.PDF_MAX_PAGES)
        self.sleep = sleep

    def extract(self, image_bytes: bytes, mime_type: str) -> ExtractedReceiptData:
        """Extract receipt data from an uploaded image or PDF.

        Raises:
            InvalidUploadError: The file is empty, too big or unreadable.
            ExtractionError: The model could not be reached or its reply was unusable.
        """
        receipt, _ = self.extract_with_notes(image_bytes, mime_type)
        return receipt

    def extract_with_notes(self, image_bytes: bytes, mime_type: str) -> tuple[ExtractedReceiptData, list[str]]:
        """Like ``extract`` but also returns the scale correction notes."""
        images = self._prepare_images(image_bytes, mime_type)

        content = []
        for data, media_type in images:
            content.append(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": media_type,
                        "data": base64.standard_b64encode(data).decode("utf-8"),
                    },
                }
            )
        content.append({"type": "text", "text": EXTRACTION_PROMPT})

        try:
            response = call_with_retry(
                lambda: self.client.messages.create(
                    model=self.model,
                    max_tokens=self.max_tokens,
                    messages=[{"role": "user", "content": content}],
                ),
                policy=self.retry_policy,
                is_retryable=is_transient_error,
                sleep=self.sleep,
                description="Claude API call",
            )
        except anthropic.APIError as e:
            logger.error(f"Claude API error after retries: {e}")
            raise ExtractionError(friendly_message(e)) from e

        if not response.content or not getattr(response.content[0], "text", None):
            logger.error("Empty response from Claude API")
            raise ExtractionError(PARSE_FAILED_MESSAGE)

        parsed = parse_response(response.content[0].text)
        receipt = build_receipt_data(parsed, id_token=uuid.uuid4().hex[:8])
        logger.info(f"Extracted {len(receipt.items)} items from {receipt.merchant_name}")

        return correct_scale(receipt, self.scale_thresholds)

    def _prepare_images(self, file_bytes: bytes, mime_type: str) -> list[tuple[bytes, str]]:
        """Validate the upload and turn it into (bytes, media_type) images.

        Raises:
            InvalidUploadError: If the upload cannot be used.
        """
        if not file_bytes:
            raise InvalidUploadError(UNREADABLE_FILE_MESSAGE)
        if len(file_bytes) > config.MAX_UPLOAD_BYTES:
            raise InvalidUploadError(
                f"File terlalu besar ({len(file_bytes) / 1024 / 1024:.1f}MB). "
                f"Maksimal {config.MAX_UPLOAD_BYTES / 1024 / 1024:.0f}MB."
            )

        if is_pdf(file_bytes) or mime_type == "application/pdf":
            try:
                pages = self.pdf_processor.pdf_to_images(file_bytes)
            except ValueError as e:
                logger.error(f"Unreadable PDF upload: {e}")
                raise InvalidUploadError(UNREADABLE_FILE_MESSAGE) from e
            return [self._compress_image(page, "image/png") for page in pages]

        media_type = self._detect_media_type(file_bytes)
        if media_type is None:
            raise InvalidUploadError(UNREADABLE_FILE_MESSAGE)
        if media_type != mime_type:
            logger.debug(f"Corrected media type from {mime_type} to {media_type}")

        try:
            with Image.open(io.BytesIO(file_bytes)) as img:
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            logger.error(f"Unreadable image upload: {e}")
            raise InvalidUploadError(UNREADABLE_FILE_MESSAGE) from e

        return [self._compress_image(file_bytes, media_type)]

    @staticmethod
    def _detect_media_type(image_bytes: bytes) -> Optional[str]:
        """Detect media type from magic numbers, None when not a supported image."""
        if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
            return "image/png"
        elif image_bytes[:2] == b"\xff\xd8":
            return "image/jpeg"
        elif image_bytes[:6] in (b"GIF87a", b"GIF89a"):
            return "image/gif"
        elif image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
            return "image/webp"
        return None

    @staticmethod
    def _compress_image(image_bytes: bytes, media_type: str) -> tuple[bytes, str]:
        """Fix EXIF rotation and shrink the image until it fits the API limits.

        Args:
            image_bytes: Original image bytes.
            media_type: Original media type.

        Returns:
            Tuple of (image_bytes, media_type), unchanged when nothing was needed.
        """
        try:
            img = Image.open(io.BytesIO(image_bytes))
            original_size = (img.width, img.height)
            img = ImageOps.exif_transpose(img)

            exif_rotated = (img.width, img.height) != original_size
            needs_resize = max(img.width, img.height) > MAX_IMAGE_DIMENSION
            needs_compress = len(image_bytes) > MAX_IMAGE_SIZE

            if not needs_resize and not needs_compress and not exif_rotated:
                return image_bytes, media_type

            if img.mode in ("RGBA", "LA", "P"):
                if img.mode == "P":
                    img = img.convert("RGBA")
                background = Image.new("RGB", img.size, (255, 255, 255))
                background.paste(img, mask=img.split()[-1])
                img = background
            elif img.mode != "RGB":
                img = img.convert("RGB")

            if needs_resize:
                scale = MAX_IMAGE_DIMENSION / max(img.width, img.height)
                img = img.resize((int(img.width * scale), int(img.height * scale)), Image.Resampling.LANCZOS)
                logger.info(f"Resized to {img.width}x{img.height}")

            for quality in [95, 85, 70, 55, 40]:
                buffer = io.BytesIO()
                img.save(buffer, format="JPEG", quality=quality, optimize=True)
                compressed = buffer.getvalue()
                if len(compressed) <= MAX_IMAGE_SIZE:
                    logger.info(f"Compressed to {len(compressed) / 1024 / 1024:.2f}MB at quality {quality}")
                    return compressed, "image/jpeg"

            for scale in [0.8, 0.6, 0.4, 0.2]:
                resized = img.resize((int(img.width * scale), int(img.height * scale)), Image.Resampling.LANCZOS)
                buffer = io.BytesIO()
                resized.save(buffer, format="JPEG", quality=60, optimize=True)
                compressed = buffer.getvalue()
                if len(compressed) <= MAX_IMAGE_SIZE:
                    logger.info(f"Resized to {resized.size} and compressed to {len(compressed) / 1024 / 1024:.2f}MB")
                    return compressed, "image/jpeg"

            logger.warning("Image still above size limit after compression")
            return compressed, "image/jpeg"

        except Exception as e:
            logger.error(f"Failed to compress image: {e}")
            return image_bytes, media_type
