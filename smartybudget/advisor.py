"""Generative-AI helpers backed by Google Gemini.

Every call is bounded by a timeout and returns an ``Either``: the caller gets
either the parsed result or an error dict it can show to the user. Nothing
here touches the ledger on its own; applying a generated plan or a scanned
receipt is a separate call that re-validates the data and refuses to run if
the ledger changed since the request was issued.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from google import genai
from google.genai import types

from smartybudget import config, transforms
from smartybudget.domain import BUCKETS, Bucket, CategoryRef, Ledger, LineItem
from smartybudget.functional import (
    Either,
    Left,
    Maybe,
    Nothing,
    Right,
    Some,
    error,
    validate_item_name,
    validate_line_items,
    validate_planned,
    validate_transaction_fields,
)
from smartybudget.logging_setup import get_logger
from smartybudget.store import LedgerStore

logger = get_logger("smartybudget.advisor")


@dataclass(frozen=True)
class Tip:
    tip: str
    explanation: str


@dataclass(frozen=True)
class Source:
    kind: str
    title: str
    uri: str


@dataclass(frozen=True)
class Suggestion:
    title: str
    positive_feedback: str
    areas_for_improvement: str
    actionable_tips: Tuple[Tip, ...] = ()
    sources: Tuple[Source, ...] = ()


@dataclass(frozen=True)
class ReceiptAnalysis:
    vendor: str
    total_amount: float
    transaction_date: str
    suggested_category_name: str
    location: str = ""
    items: Tuple[LineItem, ...] = ()


@dataclass(frozen=True)
class PlanLine:
    name: str
    planned: float


@dataclass(frozen=True)
class PlanDraft:
    income: Tuple[PlanLine, ...] = ()
    bills: Tuple[PlanLine, ...] = ()
    expenses: Tuple[PlanLine, ...] = ()
    savings: Tuple[PlanLine, ...] = ()
    debt: Tuple[PlanLine, ...] = ()

    def lines(self, b: Bucket) -> Tuple[PlanLine, ...]:
        return getattr(self, b.value)


SUGGESTION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "positive_feedback": {"type": "STRING"},
        "areas_for_improvement": {"type": "STRING"},
        "actionable_tips": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "tip": {"type": "STRING"},
                    "explanation": {"type": "STRING"},
                },
                "required": ["tip", "explanation"],
            },
        },
    },
    "required": ["title", "positive_feedback", "areas_for_improvement", "actionable_tips"],
}

RECEIPT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "vendor": {"type": "STRING", "description": "The name of the vendor or store."},
        "totalAmount": {"type": "NUMBER", "description": "The final total amount of the transaction."},
        "transactionDate": {"type": "STRING", "description": "The date of the transaction in YYYY-MM-DD format."},
        "suggestedCategoryName": {"type": "STRING", "description": "The suggested overall category name from the provided list."},
        "location": {"type": "STRING", "description": "The street address of the vendor. Return an empty string if not found."},
        "items": {
            "type": "ARRAY",
            "description": "An itemized list of products and their prices.",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "description": {"type": "STRING", "description": "The name or description of the item."},
                    "amount": {"type": "NUMBER", "description": "The price of the item."},
                },
                "required": ["description", "amount"],
            },
        },
    },
    "required": ["vendor", "totalAmount", "transactionDate", "suggestedCategoryName", "location", "items"],
}

_PLAN_LINES = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {"name": {"type": "STRING"}, "planned": {"type": "NUMBER"}},
        "required": ["name", "planned"],
    },
}

PLAN_SCHEMA = {
    "type": "OBJECT",
    "properties": {b.value: _PLAN_LINES for b in BUCKETS},
    "required": [b.value for b in BUCKETS],
}

COACH_INSTRUCTION = (
    "You are 'Smarty', a witty, modern, and encouraging financial coach. Your goal is to provide "
    "actionable, insightful, and positive financial advice. Use emojis to make your advice friendly "
    "and engaging. Always find something to praise before offering constructive criticism."
)


def make_client(api_key: Optional[str] = None) -> Maybe[genai.Client]:
    key = (api_key if api_key is not None else config.GEMINI_API_KEY).strip()
    if not key:
        return Nothing()
    return Some(genai.Client(api_key=key))


def _json_config(schema: Optional[dict], **extra: Any) -> Optional[dict]:
    request_config = dict(extra)
    if schema is not None:
        request_config.update(response_mime_type="application/json", response_schema=schema)
    return request_config or None


async def _request(
    client: Any,
    contents: Any,
    request_config: Optional[dict] = None,
    *,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Either[dict, Any]:
    try:
        response = await asyncio.wait_for(
            client.aio.models.generate_content(
                model=model or config.AI_MODEL,
                contents=contents,
                config=request_config,
            ),
            timeout=timeout if timeout is not None else config.AI_TIMEOUT,
        )
    except asyncio.TimeoutError:
        logger.warning("AI request timed out")
        return Left(error("timeout", "The AI service took too long to respond. Please try again."))
    except Exception:
        # the SDK raises a mix of its own and transport errors; all are recoverable here
        logger.exception("AI request failed")
        return Left(error("service_error", "The AI service is unavailable right now. Please try again."))
    return Right(response)


def _response_text(response: Any) -> Either[dict, str]:
    text = (getattr(response, "text", None) or "").strip()
    if not text:
        return Left(error("malformed_response", "The AI service returned an empty response."))
    return Right(text)


async def _generate(
    client: Any,
    contents: Any,
    schema: Optional[dict] = None,
    *,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Either[dict, str]:
    response = await _request(client, contents, _json_config(schema), model=model, timeout=timeout)
    return response.bind(_response_text)


def grounding_sources(response: Any) -> Tuple[Source, ...]:
    """Web and map citations attached to a search-grounded response."""
    candidates = getattr(response, "candidates", None) or ()
    if not candidates:
        return ()
    metadata = getattr(candidates[0], "grounding_metadata", None)
    sources = []
    for chunk in getattr(metadata, "grounding_chunks", None) or ():
        for kind in ("web", "maps"):
            ref = getattr(chunk, kind, None)
            uri = getattr(ref, "uri", None)
            if uri:
                sources.append(Source(kind=kind, title=getattr(ref, "title", None) or uri, uri=uri))
                break
    return tuple(sources)


def _load_object(text: str) -> Either[dict, dict]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return Left(error("malformed_response", "The AI service returned data that could not be read."))
    if not isinstance(data, dict):
        return Left(error("malformed_response", "The AI service returned data in an unexpected shape."))
    return Right(data)


def _malformed(detail: str) -> Left:
    return Left(error("malformed_response", f"The AI response was incomplete: {detail}"))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_suggestion(text: str) -> Either[dict, Suggestion]:
    def _build(data: dict) -> Either[dict, Suggestion]:
        fields = ("title", "positive_feedback", "areas_for_improvement")
        if not all(isinstance(data.get(f), str) for f in fields):
            return _malformed("missing feedback text")
        raw_tips = data.get("actionable_tips")
        if not isinstance(raw_tips, list):
            return _malformed("missing actionable tips")
        tips = []
        for raw in raw_tips:
            if not isinstance(raw, dict) or not isinstance(raw.get("tip"), str):
                return _malformed("tip without text")
            tips.append(Tip(tip=raw["tip"], explanation=str(raw.get("explanation") or "")))
        return Right(Suggestion(*(data[f] for f in fields), actionable_tips=tuple(tips)))

    return _load_object(text).bind(_build)


def parse_receipt(text: str) -> Either[dict, ReceiptAnalysis]:
    def _build(data: dict) -> Either[dict, ReceiptAnalysis]:
        if not _is_number(data.get("totalAmount")):
            return _malformed("total amount is not a number")
        items = validate_line_items(data.get("items") if isinstance(data.get("items"), list) else ())
        if items.is_left():
            return _malformed("itemised rows are not readable")
        return Right(ReceiptAnalysis(
            vendor=str(data.get("vendor") or ""),
            total_amount=float(data["totalAmount"]),
            transaction_date=str(data.get("transactionDate") or ""),
            suggested_category_name=str(data.get("suggestedCategoryName") or ""),
            location=str(data.get("location") or ""),
            items=items.get_or_else(()),
        ))

    return _load_object(text).bind(_build)


def parse_plan(text: str) -> Either[dict, PlanDraft]:
    def _build(data: dict) -> Either[dict, PlanDraft]:
        buckets: Dict[str, Tuple[PlanLine, ...]] = {}
        for b in BUCKETS:
            raw_lines = data.get(b.value, [])
            if not isinstance(raw_lines, list):
                return _malformed(f"{b.value} is not a list")
            lines = []
            for raw in raw_lines:
                if not isinstance(raw, dict) or not isinstance(raw.get("name"), str) or not _is_number(raw.get("planned")):
                    return _malformed(f"unreadable {b.value} line")
                lines.append(PlanLine(name=raw["name"], planned=float(raw["planned"])))
            buckets[b.value] = tuple(lines)
        return Right(PlanDraft(**buckets))

    return _load_object(text).bind(_build)


async def narrative_summary(client: Any, stats: Mapping[str, str], **kwargs) -> Either[dict, str]:
    prompt = (
        "Based on the following data, provide a very short, 1-2 sentence narrative summary of the "
        "user's financial performance this month. Be encouraging but realistic. Here's the data: "
        f"Total Income: {stats['total_income']}. Total Planned Expenses: {stats['planned_expenses']}. "
        f"Total Actual Expenses: {stats['total_expenses']}. Total Saved: {stats['total_savings']}. "
        f"Savings Rate: {stats['savings_rate']}."
    )
    return await _generate(client, prompt, **kwargs)


async def budget_suggestions(client: Any, stats: Mapping[str, str], **kwargs) -> Either[dict, Suggestion]:
    prompt = (
        f"Analyze this budget summary and provide feedback. Currency is {stats['currency']}. "
        f"Income: {stats['total_income']}, Expenses: {stats['total_expenses']}, "
        f"Savings: {stats['total_savings']}, Savings Rate: {stats['savings_rate']}, "
        f"Top Expenses: {stats['top_expenses']}."
    )
    request_config = _json_config(
        SUGGESTION_SCHEMA,
        system_instruction=COACH_INSTRUCTION,
        tools=[types.Tool(google_search=types.GoogleSearch())],
    )
    response = await _request(client, prompt, request_config, **kwargs)

    def _with_sources(raw: Any) -> Either[dict, Suggestion]:
        parsed = _response_text(raw).bind(parse_suggestion)
        return parsed.map(lambda s: replace(s, sources=grounding_sources(raw)))

    return response.bind(_with_sources)


async def dashboard_insights(client: Any, stats: Mapping[str, str], **kwargs) -> Tuple[Either, Either]:
    """Narrative and suggestions for the same month, requested concurrently."""
    narrative, suggestions = await asyncio.gather(
        narrative_summary(client, stats, **kwargs),
        budget_suggestions(client, stats, **kwargs),
    )
    return narrative, suggestions


async def analyze_receipt(
    client: Any,
    image: bytes,
    mime_type: str,
    category_names: Sequence[str],
    today: Optional[date] = None,
    **kwargs,
) -> Either[dict, ReceiptAnalysis]:
    year = (today or date.today()).year
    prompt = (
        "Analyze the receipt in the image. Extract the vendor name, total amount, transaction date, "
        "and the full street address of the vendor if available. Also extract an itemized list of "
        "products and their prices. Finally, suggest the most relevant overall category for this "
        f"purchase from this list: {json.dumps(list(category_names))}. The current year is {year}. "
        "If the year is not specified on the receipt, assume it's the current year. If an itemized "
        "list is not clear or available, return an empty array for items."
    )
    contents = [types.Part.from_bytes(data=image, mime_type=mime_type), prompt]
    result = await _generate(client, contents, RECEIPT_SCHEMA, **kwargs)
    return result.bind(parse_receipt)


async def generate_plan(client: Any, description: str, currency: str, **kwargs) -> Either[dict, PlanDraft]:
    if not description or not description.strip():
        return Left(error("empty_prompt", "Please describe your financial situation first."))
    prompt = (
        "Based on the user's description, create a detailed monthly budget plan. "
        f"The user's currency is {currency}. Break down their budget into income, bills, expenses, "
        "savings, and debt categories with specific items and planned amounts for each. The total "
        "planned amounts for all spending, savings, and debt should logically align with the "
        f'described income. User\'s description: "{description.strip()}"'
    )
    result = await _generate(client, prompt, PLAN_SCHEMA, **kwargs)
    return result.bind(parse_plan)


# --- folding results into the ledger


def plan_to_ledger(ledger: Ledger, plan: PlanDraft, id_factory=transforms.new_item_id) -> Either[dict, Ledger]:
    """Replace every bucket with the plan's lines, keeping the transaction log.

    Lines go through the same validation and item construction as a manual
    add, so each gets a freshly minted id.
    """
    result = replace(ledger, **{b.value: () for b in BUCKETS})
    for b in BUCKETS:
        for line in plan.lines(b):
            name = validate_item_name(line.name)
            if name.is_left():
                return name
            planned = validate_planned(line.planned)
            if planned.is_left():
                return planned
            result = transforms.add_item(
                result, b, name.get_or_else(""), planned.get_or_else(0.0), id_factory=id_factory,
            )
    return Right(result)


def apply_plan(store: LedgerStore, plan: PlanDraft, revision: int) -> Either[dict, Ledger]:
    if not store.is_current(revision):
        return store.stale_error(revision)
    return plan_to_ledger(store.ledger, plan, store.item_id_factory).map(store.replace_all)


def match_category(ledger: Ledger, suggested: str) -> Maybe[CategoryRef]:
    wanted = (suggested or "").strip().lower()
    if not wanted:
        return Nothing()
    for ref, item in transforms.all_items(ledger):
        if item.name.strip().lower() == wanted:
            return Some(ref)
    return Nothing()


def receipt_fields(analysis: ReceiptAnalysis, ledger: Ledger) -> Dict[str, Any]:
    """Prefill values for the confirm-receipt form."""
    return {
        "date": analysis.transaction_date,
        "description": analysis.vendor,
        "amount": analysis.total_amount,
        "category": match_category(ledger, analysis.suggested_category_name).get_or_else(None),
        "location": analysis.location,
        "items": analysis.items,
    }


def add_receipt_transaction(store: LedgerStore, fields: Mapping[str, Any], revision: int) -> Either[dict, Ledger]:
    if not store.is_current(revision):
        return store.stale_error(revision)
    return validate_transaction_fields(fields, store.ledger).map(store.add_transaction)


def category_choices(ledger: Ledger) -> Iterable[Tuple[CategoryRef, str]]:
    return ((ref, item.name) for ref, item in transforms.all_items(ledger))
