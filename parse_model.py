import logging
import re

import pytesseract
from PIL import Image

logger = logging.getLogger(__name__)

# Trailing price, optionally followed by a currency marker ("87.000", "120,000 đ", "45k")
PRICE_RE = re.compile(r'([\d.,]+)\s*(?:d|đ|VND|k)?\s*$', re.IGNORECASE)
QTY_COLUMN_RE = re.compile(r'\s+(\d+([.,]\d{1,2})?)\s*$')
LEADING_QTY_RE = re.compile(r'^(\d+)\s*[xX]?\s+')
TAX_RE = re.compile(r'(?:tax|vat|thuế|gtgt)', re.IGNORECASE)
SERVICE_RE = re.compile(r'(?:service|phí dịch vụ|svc|phụ thu)', re.IGNORECASE)

IGNORE_PATTERNS = [
    re.compile(pattern, re.IGNORECASE) for pattern in (
        r'total', r'subtotal', r'gratuity',
        r'thành tiền', r'tổng', r'tiền mặt', r'trả lại', r'thối lại',
        r'món ăn', r'đơn giá', r'số lượng', r'thanh toán', r'phiếu tạm tính',
        r'check', r'thu ngân', r'khách', r'bàn', r'giờ', r'ngày',
    )
]

# Anything cheaper is a stray number (table no., time, qty), not a price
MIN_PRICE = 500


def quick_receipt_read(image_path):
    """Extract raw text from a receipt image"""
    image = Image.open(image_path)
    return pytesseract.image_to_string(image)


def _parse_price(raw_price, line):
    digits = re.sub(r'\D', '', raw_price)
    if not digits:
        return None
    price = float(digits)
    if 'k' in raw_price.lower() or line.lower().endswith('k'):
        price *= 1000
    return price


def _split_quantity(remainder):
    """Pull a quantity off the end ("Beer 3") or the front ("2x Beer") of a line"""
    match = QTY_COLUMN_RE.search(remainder)
    if match:
        qty = float(match.group(1).replace(',', '.'))
        if 0 < qty < 1000:
            qty = int(qty) if qty.is_integer() else qty
            return qty, remainder[:match.start()].strip()
        return 1, remainder

    match = LEADING_QTY_RE.match(remainder)
    if match:
        qty = int(match.group(1))
        if 0 < qty < 100:
            return qty, remainder[match.end():].strip()
    return 1, remainder


def parse_receipt_text(text):
    """
    Parse OCR text into candidate items and global charges.
    Handles VND-style prices ("87.000", "45k"), quantity columns and
    tax/service lines. The result is advisory: nothing here becomes part of
    a bill until someone confirms it.
    """
    items = []
    global_charges = []

    for line in text.split('\n'):
        line = line.strip()
        if not line:
            continue
        if any(pattern.search(line) for pattern in IGNORE_PATTERNS):
            continue

        match = PRICE_RE.search(line)
        if not match:
            continue

        price = _parse_price(match.group(1), line)
        if price is None or price < MIN_PRICE:
            continue

        if TAX_RE.search(line):
            global_charges.append({'name': 'Tax (VAT)', 'amount': price, 'type': 'fixed'})
            continue
        if SERVICE_RE.search(line):
            global_charges.append({'name': 'Service Charge', 'amount': price, 'type': 'fixed'})
            continue

        remainder = line[:match.start()].strip()
        quantity, remainder = _split_quantity(remainder)

        name = re.sub(r'^[.,\-:]+', '', remainder).strip()
        if len(name) < 2:
            continue

        items.append({'name': name, 'price': price, 'quantity': quantity})

    logger.debug("Parsed %d items and %d charges from receipt text", len(items), len(global_charges))
    return {'items': items, 'global_charges': global_charges}


def extract_receipt_data(image_path):
    """
    Complete receipt processing: OCR + parsing
    Returns candidate items/charges plus the raw OCR text
    """
    text = quick_receipt_read(image_path)
    result = parse_receipt_text(text)
    result['raw_text'] = text
    return result
