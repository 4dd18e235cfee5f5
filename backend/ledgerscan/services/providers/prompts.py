"""
Prompts and response parsing shared by the LLM-backed providers.
"""
import json
import re
from typing import Any, Dict, Optional

from ...core.exceptions import MalformedResponseError
from .base import ExtractionRequest

SYSTEM_PROMPT = """You are an expert financial document analyzer. Your task is to analyze financial documents (images or PDFs) and extract all relevant information with high accuracy.

You may receive OCR-extracted text alongside the document. Use it to identify exact amounts, dates and vendor names, and cross-reference it with the document itself.

Return a JSON object with this exact structure:
{
  "documentType": "bank_statement" | "invoice" | "receipt",
  "extractedData": {
    "documentDate": "YYYY-MM-DD format or null",
    "issuer": "bank name or vendor name or null",
    "documentNumber": "invoice/receipt number or null",
    "totalAmount": number or null,
    "originalCurrency": "CHF" | "EUR" | "USD" | "GBP" | "JPY" | "CAD" | "AUD" | etc or null,
    "vatAmount": number or null,
    "netAmount": number or null,
    "expenseCategory": "travel" | "meals" | "utilities" | "software" | "professional services" | "office supplies" | "telecommunications" | "insurance" | "rent" | "other" or null
  }
}

Document Type Classification Rules:
- bank_statement: Documents showing account balances, transactions, statements from banks
- invoice: Formal billing documents with invoice numbers, due dates, company letterheads
- receipt: Simple receipts, cash register receipts, payment confirmations
- Never use any other document type.

Extraction Rules:
- If information is not clearly visible or unavailable, set it to null (do not guess, never use placeholder text)
- For bank statements: total amount is usually the closing balance or net transactions
- For invoices/receipts: total amount includes VAT, extract net amount and VAT separately if available
- Detect currency from symbols (€, $, CHF, Fr., £, ¥) or explicit currency codes and return the 3-letter ISO code
- Document dates must be in YYYY-MM-DD format
- Categorize expenses based on vendor type and transaction description

Expense Categories:
- travel: hotels, airlines, trains, taxis, car rentals
- meals: restaurants, catering, food delivery
- utilities: electricity, water, gas
- software: software licenses, cloud services, IT services
- professional services: consulting, legal, accounting, marketing
- office supplies: stationery, equipment, furniture
- telecommunications: phone, internet, mobile plans
- insurance: health, liability, property insurance
- rent: office rent, lease payments
- other: anything not fitting above categories

Only return valid JSON, no other text or explanations."""

_IMAGE_INSTRUCTIONS = """You are analyzing a financial document PHOTO/RECEIPT. Carefully examine this image and extract ALL visible information:

1. DOCUMENT TYPE: bank_statement, invoice, or receipt, based on the document structure and content.
2. VENDOR/ISSUER: store names, logos, bank names, company letterheads or merchant names.
3. FINANCIAL AMOUNTS: total, VAT/tax (if shown separately), net (if shown) and currency.
4. DATES: document, transaction or issue date, converted to YYYY-MM-DD.
5. DOCUMENT NUMBER: invoice numbers, receipt numbers or transaction IDs.
6. EXPENSE CATEGORY: one of the allowed categories, based on vendor and content.

File name: {file_name}{ocr_context}

If information is not clearly visible, set it to null. Only extract what you can clearly see in the image or OCR text."""

_PDF_INSTRUCTIONS = """This is a PDF document. The filename is "{file_name}".{ocr_context}

Analyze the document content and extract financial information including document type, dates, amounts, currencies, VAT information and expense category. Look for patterns typical of bank statements, invoices, or receipts."""

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def build_ocr_context(ocr_text: Optional[str]) -> str:
    if not ocr_text:
        return ""
    return (
        "\n\nOCR TEXT (extracted by a dedicated OCR service):\n"
        f"{ocr_text}\n\n"
        "Use this OCR text to help identify amounts, dates, vendor names and other details. "
        "Cross-reference with the document to ensure accuracy."
    )


def build_user_prompt(request: ExtractionRequest, ocr_text: Optional[str] = None) -> str:
    """Per-document instructions; the file name is context only."""
    template = _IMAGE_INSTRUCTIONS if request.is_image else _PDF_INSTRUCTIONS
    return template.format(file_name=request.file_name, ocr_context=build_ocr_context(ocr_text))


def parse_json_payload(content: Optional[str]) -> Dict[str, Any]:
    """
    Parse a model answer into a JSON object.

    Strips markdown code fences and, failing a direct parse, falls back to the
    outermost {...} span.

    Raises:
        MalformedResponseError: Empty answer or no JSON object in it
    """
    if not content or not content.strip():
        raise MalformedResponseError("No response from AI")

    text = _FENCE_RE.sub("", content.strip())
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            raise MalformedResponseError()
        try:
            parsed = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            raise MalformedResponseError()

    if not isinstance(parsed, dict):
        raise MalformedResponseError()
    return parsed
