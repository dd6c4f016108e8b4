"""
Field extraction engine
=======================
A small interpreter over FieldSelector / ExtractionSchema data.

Flow:
  Step 1 → For each candidate selector, take the first matching node
  Step 2 → Read the raw value (text / inner html / attribute)
  Step 3 → Run the filter pipeline in order
  Step 4 → Collect values; field-level failures become absence + an error

Field-level problems (SelectorMiss, FilterFailure) never raise out of
extract(). Stage-level (AssertionMismatch) and document-level (ParseError)
problems do, and no partial record is returned with them.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

import soupsieve
from bs4 import BeautifulSoup, Tag

from trackers.errors import AssertionMismatch, FilterFailure, InvalidSelector, ParseError, SelectorMiss
from trackers.filters import NODE_FILTERS, FilterContext, compile_pattern, get_filter
from trackers.models import ExtractionSchema, FieldExtraction, FieldSelector

logger = logging.getLogger(__name__)

_PARAM_PREFIX = "params."


def read_raw(node: Tag, attr: str) -> str | None:
    """Raw string for a node according to the extraction mode."""
    if attr == "text":
        return node.get_text().strip()
    if attr == "html":
        return node.decode_contents().strip()
    value = node.get(attr)
    if isinstance(value, list):  # multi-valued attributes such as class
        return " ".join(value)
    return value


def run_pipeline(value: Any, selector: FieldSelector, context: FilterContext) -> Any:
    for invocation in selector.filters:
        try:
            value = get_filter(invocation.name)(value, invocation.args, context)
        except FilterFailure:
            raise
        except (re.error, ValueError, TypeError, IndexError, OverflowError) as exc:
            raise FilterFailure(invocation.name, str(exc)) from exc
    return value


def resolve_field(
    document: Tag,
    name: str,
    selector: FieldSelector,
    context: FilterContext | None = None,
) -> Any:
    """
    Resolve one field. Raises SelectorMiss when nothing matched and no
    literal fallback exists, InvalidSelector for a malformed candidate,
    FilterFailure when the pipeline rejects.
    """
    context = context or FilterContext()
    wants_node = bool(selector.filters) and selector.filters[0].name in NODE_FILTERS

    seed: Any = None
    for query in selector.selectors:
        try:
            node = document.select_one(query)
        except soupsieve.SelectorSyntaxError as exc:
            raise InvalidSelector(name, query, str(exc)) from exc
        if node is None:
            continue
        if wants_node:
            seed = node
            break
        raw = read_raw(node, selector.attr)
        if raw:
            seed = raw
            break

    if seed is None:
        if selector.text is None:
            raise SelectorMiss(name)
        seed = selector.text

    try:
        return run_pipeline(seed, selector, context)
    except FilterFailure as exc:
        exc.field = name
        raise


def _ensure_document(document: Tag | None) -> Tag:
    if document is None:
        raise ParseError("no document to extract from")
    if isinstance(document, BeautifulSoup) and not document.contents:
        raise ParseError("document is empty")
    return document


def extract(
    document: Tag | None,
    selectors: Mapping[str, FieldSelector],
    context: FilterContext | None = None,
    fields: Sequence[str] | None = None,
) -> FieldExtraction:
    """
    Evaluate field selectors against one document.

    Returns a FieldExtraction holding resolved values and per-field errors.
    Raises ParseError only when there is no document at all.
    """
    document = _ensure_document(document)
    context = context or FilterContext()
    result = FieldExtraction()

    for name in fields if fields is not None else selectors:
        selector = selectors.get(name)
        if selector is None:
            logger.debug("No selector declared for field %s, skipping", name)
            continue
        try:
            result.values[name] = resolve_field(document, name, selector, context)
        except SelectorMiss as exc:
            logger.debug("Field %s: no candidate matched", name)
            result.errors[name] = exc
        except InvalidSelector as exc:
            logger.warning("Field %s: %s", name, exc)
            result.errors[name] = exc
        except FilterFailure as exc:
            logger.warning("Field %s rejected by filter: %s", name, exc)
            result.errors[name] = exc

    return result


# ── Multi-stage schemas ────────────────────────────────────────────────


def stage_params(schema: ExtractionSchema, index: int, resolved: Mapping[str, Any]) -> dict[str, str]:
    """
    Build request parameters for stage `index` from already-resolved values.

    {"id": "params.id"} means the request's `id` parameter comes from the
    resolved `id` field. A missing source value aborts the extraction.
    """
    params: dict[str, str] = {}
    for field, reference in schema.stages[index].assertion.items():
        if field not in resolved:
            raise AssertionMismatch(index, field, expected=None, actual="<unresolved>")
        if reference.startswith(_PARAM_PREFIX):
            params[reference[len(_PARAM_PREFIX):]] = _format_param(resolved[field])
    return params


def _format_param(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def evaluate_stage(
    schema: ExtractionSchema,
    index: int,
    document: Tag | None,
    resolved: Mapping[str, Any],
    context: FilterContext | None = None,
) -> dict[str, Any]:
    """
    Run one stage and return the merged mapping (a new dict).

    Asserted fields are re-read from this stage's document; a value that
    differs from the earlier one means the page belongs to someone else.
    """
    document = _ensure_document(document)
    context = context or FilterContext()
    stage = schema.stages[index]

    for field in stage.assertion:
        if field not in resolved:
            raise AssertionMismatch(index, field, expected=None, actual="<unresolved>")
        selector = schema.selectors.get(field)
        if selector is None:
            continue
        try:
            actual = resolve_field(document, field, selector, context)
        except (SelectorMiss, InvalidSelector, FilterFailure):
            logger.debug("Stage %d: asserted field %s not present on page", index, field)
            continue
        if str(actual) != str(resolved[field]):
            raise AssertionMismatch(index, field, expected=resolved[field], actual=actual)

    extraction = extract(document, schema.selectors, context, fields=stage.fields)
    merged = dict(resolved)
    for name, value in extraction.values.items():
        if name in merged and name not in schema.pick_last:
            continue
        merged[name] = value
    return merged


def extract_schema(
    schema: ExtractionSchema,
    documents: Sequence[Tag | None],
    context: FilterContext | None = None,
) -> dict[str, Any]:
    """Run every stage over pre-fetched documents (one per stage, in order)."""
    if len(documents) != len(schema.stages):
        raise ParseError(
            f"schema has {len(schema.stages)} stages but {len(documents)} documents were given"
        )
    resolved: dict[str, Any] = {}
    for index, document in enumerate(documents):
        resolved = evaluate_stage(schema, index, document, resolved, context)
    return resolved


def validate_field_selector(name: str, selector: FieldSelector) -> None:
    """Reject malformed CSS candidates, unknown filters and bad filter arguments."""
    if not selector.selectors and selector.text is None:
        raise ValueError(f"field {name!r} has neither selectors nor a literal fallback")
    for query in selector.selectors:
        try:
            soupsieve.compile(query)
        except soupsieve.SelectorSyntaxError as exc:
            raise ValueError(f"field {name!r}: invalid selector {query!r}: {exc}") from None
    for invocation in selector.filters:
        get_filter(invocation.name)
        if invocation.name == "regex" and invocation.args:
            try:
                compile_pattern(str(invocation.args[0]))
            except re.error as exc:
                raise ValueError(f"field {name!r}: invalid regex {invocation.args[0]!r}: {exc}") from None
        elif invocation.name == "index" and invocation.args:
            try:
                int(invocation.args[0])
            except (TypeError, ValueError):
                raise ValueError(f"field {name!r}: index argument must be an integer") from None


def validate_schema(schema: ExtractionSchema) -> None:
    """Reject invalid field selectors, undeclared stage fields and non-document stages."""
    for name, selector in schema.selectors.items():
        validate_field_selector(name, selector)
    for index, stage in enumerate(schema.stages):
        if stage.request.response_type != "document":
            raise ValueError(f"stage {index}: unsupported response type {stage.request.response_type!r}")
        missing = [name for name in stage.fields if name not in schema.selectors]
        if missing:
            raise ValueError(f"stage {index}: no selector for fields {missing}")
        for field, reference in stage.assertion.items():
            if not reference.startswith(_PARAM_PREFIX):
                raise ValueError(f"stage {index}: assertion for {field!r} must reference params.*")
