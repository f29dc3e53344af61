"""
Field mapping service.

Maps uploaded source field names onto the target catalog:
    1. One inference call (prompt with catalog, descriptions, source list)
    2. Repair + validate the response entry by entry
    3. Completeness: every source field gets exactly one result
    4. Coverage: catalog fields nobody maps to get a "(Missing) <name>" entry
    5. Correction: a target in the catalog is always required

Whenever inference cannot be used (no key, HTTP error, unrepairable text)
the similarity engine produces the results instead; mapping never fails
for data reasons, only for caller contract violations.

Also holds the edits the review screen applies (override, toggle, remove).
"""

import json
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence, Union
import structlog
from pydantic import ValidationError as PydanticValidationError

from config.settings import Settings, get_settings
from exceptions import MappingContractError, MappingNotFoundError, ResponseParseError
from integrations.gemini import InferenceClient, build_gemini_client
from models.mapping import (
    MANUAL_OVERRIDE_REASON,
    MISSING_SOURCE_PREFIX,
    EntryValidation,
    MappingEntry,
    MappingResult,
    MappingStrategy,
    RejectedEntry,
    TargetField,
    ValidEntry,
)
from parsers.response_repair import parse_mapping_response
from services.similarity_service import find_best_match

logger = structlog.get_logger(__name__)


UNMAPPED_CONFIDENCE = 0.5
UNMAPPED_REASON = "Unmapped - kept as optional"
NO_CATALOG_REASON = "No target fields available - kept as optional"
NO_MATCH_REASON = "No similar target field found - kept as optional"
MISSING_REASON = "Required target field has no matching source field - fill manually"
DEFAULT_ENTRY_REASON = "AI-suggested mapping"
CATALOG_CORRECTION_NOTE = "(target is a catalog field - marked required)"
USER_TOGGLED_NOTE = " (user toggled)"

# Prompt and JSON wrapper, independent of the field count
PROMPT_OVERHEAD_TOKENS = 512

TargetFieldInput = Union[TargetField, Mapping[str, Any], str]


@dataclass
class MappingOutcome:
    """Results of one mapping run and how they were produced."""
    results: list[MappingResult]
    strategy: MappingStrategy
    fallback_reason: Optional[str] = None
    rejected_entries: list[RejectedEntry] = field(default_factory=list)

    @property
    def required_count(self) -> int:
        return sum(1 for r in self.results if r.is_required)

    @property
    def optional_count(self) -> int:
        return sum(1 for r in self.results if r.is_optional)


# ===================
# INPUT NORMALIZATION
# ===================

def normalize_source_fields(source_fields: Optional[Sequence[Any]]) -> list[str]:
    """
    Check the source field contract and drop duplicates.

    Names are kept as sent; padding is part of a field's identity.

    Raises:
        MappingContractError: None/empty list, or a non-string/blank name
    """
    if source_fields is None or isinstance(source_fields, (str, bytes)) or len(source_fields) == 0:
        raise MappingContractError(
            "source_fields must be a non-empty list of field names",
            details={"received": None if source_fields is None else type(source_fields).__name__}
        )

    names: dict[str, None] = {}
    for index, name in enumerate(source_fields):
        if not isinstance(name, str) or not name.strip():
            raise MappingContractError(
                "source_fields entries must be non-blank strings",
                details={"index": index, "value": repr(name)}
            )
        names.setdefault(name, None)

    return list(names)


def normalize_target_names(target_fields: Optional[Iterable[TargetFieldInput]]) -> list[str]:
    """Catalog names in order, blanks and duplicates removed."""
    names: dict[str, None] = {}
    for target in target_fields or []:
        if isinstance(target, TargetField):
            name = target.field_name
        elif isinstance(target, Mapping):
            name = target.get("field_name")
        else:
            name = target
        if isinstance(name, str) and name.strip():
            names.setdefault(name.strip(), None)
    return list(names)


# ===================
# PROMPT
# ===================

def build_mapping_prompt(
    source_fields: Sequence[str],
    target_names: Sequence[str],
    field_descriptions: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Build the single combined prompt for the inference call.

    Args:
        source_fields: Validated source field names
        target_names: Catalog names (may be empty)
        field_descriptions: Free-text description per source field

    Returns:
        Prompt text
    """
    sections = [
        "You are an expert data mapping AI specialized in mapping product data fields.",
        "Your task is to map source fields from uploaded data files to the correct target fields in our system.",
    ]

    if target_names:
        catalog = "\n".join(f"- {json.dumps(name, ensure_ascii=False)}" for name in target_names)
        sections.append(f"Target fields available in our system ({len(target_names)}):\n{catalog}")
    else:
        sections.append(
            "No target fields are defined in our system.\n"
            "Categorize each source field freely: keep the source field name as targetField, "
            "set isRequired to false and isOptional to true, and use the reason to describe "
            "what kind of product data the field holds."
        )

    descriptions = {
        name: text for name, text in (field_descriptions or {}).items()
        if isinstance(text, str) and text.strip()
    }
    if descriptions:
        lines = "\n".join(
            f"- {json.dumps(name, ensure_ascii=False)}: {text.strip()}"
            for name, text in descriptions.items()
        )
        sections.append(
            "Field Descriptions (IMPORTANT for accurate mapping):\n"
            f"{lines}\n"
            "Use these descriptions to understand field meanings and map accordingly."
        )

    sections.append(
        "Rules for mapping:\n"
        "1. Map each source field to the most appropriate target field\n"
        "2. Consider semantic similarity (e.g., \"Product Name\" -> \"Portal Name\")\n"
        "3. Consider common variations, synonyms and abbreviations\n"
        "4. Consider different languages (German/English)\n"
        "5. Provide a confidence score between 0 and 1 for each mapping\n"
        "6. Provide a brief reason for each mapping\n"
        "7. If the targetField is one of the target fields listed above, set isRequired to true "
        "and isOptional to false\n"
        "8. If no target field fits, keep the source field name as targetField, set isRequired "
        "to false and isOptional to true\n"
        f"9. Return exactly one entry per source field ({len(source_fields)} entries), "
        "never skip a field"
    )

    if target_names:
        sections.append(
            "Examples of good mappings:\n"
            "- \"Product Name\", \"Title\", \"Name\" -> \"Portal Name\"\n"
            "- \"Brand\", \"Manufacturer\", \"Hersteller\" -> \"Producer Name\"\n"
            "- \"Price\", \"Cost\", \"Preis\", \"MSRP\", \"UVP\" -> \"Initial Suggested Retail Price (SRP) EU\"\n"
            "- \"SKU\", \"Article Number\", \"Artikelnummer\" -> \"Article Number/SKU\"\n"
            "- \"EAN\", \"Barcode\", \"GTIN\" -> \"GTIN\"\n"
            "- \"Category\", \"Type\", \"Produkttyp\" -> \"Custom Category\""
        )

    numbered = "\n".join(
        f"{index}. {json.dumps(name, ensure_ascii=False)}"
        for index, name in enumerate(source_fields, start=1)
    )
    sections.append(f"Source fields to map ({len(source_fields)} total):\n{numbered}")

    sections.append(
        "Respond with ONLY valid JSON, no markdown, no explanation, in exactly this format:\n"
        "{\n"
        "  \"mappings\": [\n"
        "    {\n"
        "      \"sourceField\": \"source field name\",\n"
        "      \"targetField\": \"target field name\",\n"
        "      \"confidence\": 0.95,\n"
        "      \"reason\": \"Exact semantic match for product naming\",\n"
        "      \"isRequired\": true,\n"
        "      \"isOptional\": false\n"
        "    }\n"
        "  ]\n"
        "}"
    )

    return "\n\n".join(sections)


def estimate_max_output_tokens(field_count: int, settings: Settings) -> int:
    """Output budget sized to the number of entries expected back."""
    wanted = PROMPT_OVERHEAD_TOKENS + settings.inference_tokens_per_field * field_count
    return max(settings.inference_min_output_tokens, min(settings.inference_max_output_tokens, wanted))


# ===================
# RESPONSE VALIDATION
# ===================

def validate_entries(raw_entries: Sequence[Any], source_fields: Sequence[str]) -> list[EntryValidation]:
    """
    Validate every raw `mappings` entry.

    An entry is rejected when it is not an object, fails the MappingEntry
    schema, names a source field that was not requested, or repeats a
    source field already accepted.

    A sourceField that differs from a requested name only by padding is
    matched to that name, and the entry carries the requested spelling.

    Returns:
        One ValidEntry or RejectedEntry per raw entry, in order
    """
    requested = {name: name for name in source_fields}
    for name in source_fields:
        requested.setdefault(name.strip(), name)
    accepted: set[str] = set()
    validations: list[EntryValidation] = []

    for index, raw in enumerate(raw_entries):
        prefix = f"mappings[{index}]"

        if not isinstance(raw, Mapping):
            validations.append(RejectedEntry(index, prefix, "entry must be an object"))
            continue

        try:
            entry = MappingEntry.model_validate(raw)
        except PydanticValidationError as e:
            error = e.errors()[0]
            location = ".".join(str(part) for part in error.get("loc", ()))
            path = f"{prefix}.{location}" if location else prefix
            validations.append(RejectedEntry(index, path, error.get("msg", "invalid entry")))
            continue

        source = requested.get(entry.source_field) or requested.get(entry.source_field.strip())
        if source is None:
            validations.append(RejectedEntry(index, f"{prefix}.sourceField", "sourceField was not requested"))
            continue

        if source in accepted:
            validations.append(RejectedEntry(index, f"{prefix}.sourceField", "duplicate sourceField"))
            continue

        if source != entry.source_field:
            entry = entry.model_copy(update={"source_field": source})

        accepted.add(source)
        validations.append(ValidEntry(index, entry))

    return validations


def classify_entry(entry: MappingEntry, catalog: set[str]) -> MappingResult:
    """
    Turn a validated entry into a MappingResult.

    Priority: explicit isRequired, explicit isOptional, catalog membership,
    else optional.
    """
    if entry.is_required is True:
        required = True
    elif entry.is_optional is True:
        required = False
    else:
        required = bool(catalog) and entry.target_field in catalog

    return MappingResult(
        source_field=entry.source_field,
        target_field=entry.target_field,
        confidence=entry.confidence,
        reason=entry.reason or DEFAULT_ENTRY_REASON,
        is_required=required,
        is_optional=not required
    )


# ===================
# POST-PROCESSING
# ===================

def ensure_complete(results: list[MappingResult], source_fields: Sequence[str]) -> list[MappingResult]:
    """One result per source field, in source order; gaps become optional."""
    by_source = {r.source_field: r for r in results}
    return [
        by_source.get(source) or MappingResult.optional(
            source_field=source,
            target_field=source,
            confidence=UNMAPPED_CONFIDENCE,
            reason=UNMAPPED_REASON
        )
        for source in source_fields
    ]


def ensure_catalog_coverage(results: list[MappingResult], target_names: Sequence[str]) -> list[MappingResult]:
    """Append a synthetic required entry for every catalog field nobody targets."""
    targeted = {r.target_field for r in results}
    missing = [
        MappingResult.required(
            source_field=f"{MISSING_SOURCE_PREFIX}{name}",
            target_field=name,
            confidence=0.0,
            reason=MISSING_REASON
        )
        for name in target_names
        if name not in targeted
    ]
    return results + missing


def apply_catalog_correction(results: list[MappingResult], catalog: set[str]) -> list[MappingResult]:
    """Catalog membership always wins: such targets are required."""
    corrected = []
    for result in results:
        if result.target_field in catalog and not result.is_required:
            result = result.model_copy(update={
                "is_required": True,
                "is_optional": False,
                "reason": f"{result.reason} {CATALOG_CORRECTION_NOTE}".strip(),
            })
        corrected.append(result)
    return corrected


def finalize_results(
    results: list[MappingResult],
    source_fields: Sequence[str],
    target_names: Sequence[str],
) -> list[MappingResult]:
    catalog = set(target_names)
    completed = ensure_complete(results, source_fields)
    covered = ensure_catalog_coverage(completed, target_names)
    return apply_catalog_correction(covered, catalog)


# ===================
# SERVICE
# ===================

class FieldMappingService:
    """
    Source → target field mapper.

    The inference client is injected; None (or an unconfigured client)
    means every call goes straight to the similarity fallback.
    """

    def __init__(
        self,
        client: Optional[InferenceClient] = None,
        settings: Optional[Settings] = None
    ):
        self.client = client
        self.settings = settings or get_settings()

    def map_fields(
        self,
        source_fields: Optional[Sequence[str]],
        target_fields: Optional[Iterable[TargetFieldInput]] = None,
        field_descriptions: Optional[Mapping[str, str]] = None
    ) -> list[MappingResult]:
        """
        Map source fields onto the catalog.

        Args:
            source_fields: Source field names (non-empty)
            target_fields: Catalog as TargetField objects, dicts or names (may be empty)
            field_descriptions: Free-text description per source field

        Returns:
            One MappingResult per source field, plus "(Missing) ..." entries
            for catalog fields nobody maps to

        Raises:
            MappingContractError: Invalid source_fields
        """
        return self.map_fields_with_outcome(source_fields, target_fields, field_descriptions).results

    def map_fields_with_outcome(
        self,
        source_fields: Optional[Sequence[str]],
        target_fields: Optional[Iterable[TargetFieldInput]] = None,
        field_descriptions: Optional[Mapping[str, str]] = None
    ) -> MappingOutcome:
        """Same as map_fields, also reporting strategy and rejected entries."""
        sources = normalize_source_fields(source_fields)
        target_names = normalize_target_names(target_fields)

        logger.info(
            "field_mapping_started",
            source_fields=len(sources),
            target_fields=len(target_names),
            descriptions=len(field_descriptions or {})
        )

        if self.client is None or not self.client.is_configured:
            return self._fallback(sources, target_names, "inference not configured")

        prompt = build_mapping_prompt(sources, target_names, field_descriptions)
        max_tokens = estimate_max_output_tokens(len(sources), self.settings)

        try:
            inference = self.client.generate(
                prompt,
                temperature=self.settings.inference_temperature,
                max_output_tokens=max_tokens
            )
        except Exception as e:
            logger.warning("inference_call_raised", error=str(e), error_type=type(e).__name__)
            return self._fallback(sources, target_names, f"inference call raised: {e}")

        if not inference.ok:
            return self._fallback(sources, target_names, inference.error or "inference failed")

        try:
            payload = parse_mapping_response(inference.text)
        except ResponseParseError as e:
            logger.warning("inference_response_unparseable", error=e.message, preview=e.response_preview)
            return self._fallback(sources, target_names, "unrepairable inference response")

        raw_entries = payload.get("mappings")
        if not isinstance(raw_entries, list):
            return self._fallback(sources, target_names, "inference response has no mappings array")

        validations = validate_entries(raw_entries, sources)
        rejected = [v for v in validations if isinstance(v, RejectedEntry)]
        catalog = set(target_names)
        candidates = [
            classify_entry(v.entry, catalog)
            for v in validations
            if isinstance(v, ValidEntry)
        ]

        if rejected:
            logger.warning(
                "inference_entries_rejected",
                rejected=len(rejected),
                paths=[r.field_path for r in rejected[:10]]
            )

        results = finalize_results(candidates, sources, target_names)
        outcome = MappingOutcome(
            results=results,
            strategy=MappingStrategy.INFERENCE,
            rejected_entries=rejected
        )

        logger.info(
            "field_mapping_completed",
            strategy=outcome.strategy.value,
            accepted_entries=len(candidates),
            results=len(results),
            required=outcome.required_count,
            optional=outcome.optional_count
        )
        return outcome

    def _fallback(
        self,
        source_fields: list[str],
        target_names: list[str],
        reason: str
    ) -> MappingOutcome:
        """Similarity engine per field, then the shared post-processing."""
        logger.warning("field_mapping_fallback", reason=reason, source_fields=len(source_fields))

        candidates = []
        for source in source_fields:
            if not target_names:
                candidates.append(MappingResult.optional(source, source, UNMAPPED_CONFIDENCE, NO_CATALOG_REASON))
                continue

            match = find_best_match(
                source,
                target_names,
                min_similarity=self.settings.fallback_min_similarity
            )
            if match is None:
                candidates.append(MappingResult.optional(source, source, UNMAPPED_CONFIDENCE, NO_MATCH_REASON))
            else:
                candidates.append(MappingResult.required(source, match.target_field, match.confidence, match.reason))

        results = finalize_results(candidates, source_fields, target_names)
        outcome = MappingOutcome(
            results=results,
            strategy=MappingStrategy.FALLBACK,
            fallback_reason=reason
        )

        logger.info(
            "field_mapping_completed",
            strategy=outcome.strategy.value,
            results=len(results),
            required=outcome.required_count,
            optional=outcome.optional_count
        )
        return outcome


# ===================
# REVIEW EDITS
# ===================

def _index_of(results: Sequence[MappingResult], source_field: str) -> int:
    for index, result in enumerate(results):
        if result.source_field == source_field:
            return index
    raise MappingNotFoundError(source_field)


def override_mapping(
    results: Sequence[MappingResult],
    source_field: str,
    new_target_field: str,
    target_fields: Optional[Iterable[TargetFieldInput]] = None
) -> list[MappingResult]:
    """
    Point one source field at a new target.

    Confidence becomes 1.0 and the reason "Manual override". With a catalog
    the entry is reclassified by membership, otherwise its classification
    is kept.

    Raises:
        MappingContractError: Blank target
        MappingNotFoundError: Unknown source field
    """
    if not isinstance(new_target_field, str) or not new_target_field.strip():
        raise MappingContractError("target_field must be a non-blank string")

    index = _index_of(results, source_field)
    current = results[index]
    target = new_target_field.strip()

    if target_fields is not None:
        required = target in set(normalize_target_names(target_fields))
    else:
        required = current.is_required

    updated = MappingResult(
        source_field=current.source_field,
        target_field=target,
        confidence=1.0,
        reason=MANUAL_OVERRIDE_REASON,
        is_required=required,
        is_optional=not required
    )

    logger.info(
        "mapping_overridden",
        source_field=source_field,
        previous_target=current.target_field,
        target_field=target,
        is_required=required
    )
    return [*results[:index], updated, *results[index + 1:]]


def toggle_mapping_type(results: Sequence[MappingResult], source_field: str) -> list[MappingResult]:
    """
    Flip required/optional for one entry.

    Raises:
        MappingNotFoundError: Unknown source field
    """
    index = _index_of(results, source_field)
    current = results[index]

    reason = current.reason
    if not reason.endswith(USER_TOGGLED_NOTE):
        reason = f"{reason}{USER_TOGGLED_NOTE}"

    updated = current.model_copy(update={
        "is_required": current.is_optional,
        "is_optional": current.is_required,
        "reason": reason,
    })
    return [*results[:index], updated, *results[index + 1:]]


def remove_mapping(results: Sequence[MappingResult], source_field: str) -> list[MappingResult]:
    """
    Drop one entry.

    Raises:
        MappingNotFoundError: Unknown source field
    """
    index = _index_of(results, source_field)
    return [*results[:index], *results[index + 1:]]


def split_by_classification(
    results: Sequence[MappingResult]
) -> tuple[list[MappingResult], list[MappingResult]]:
    """Return (required, optional)."""
    required = [r for r in results if r.is_required]
    optional = [r for r in results if r.is_optional]
    return required, optional


def find_duplicate_targets(results: Sequence[MappingResult]) -> dict[str, dict[str, int]]:
    """Targets used by more than one entry, with required/optional counts."""
    counts: dict[str, dict[str, int]] = {}
    for result in results:
        entry = counts.setdefault(result.target_field, {"required_count": 0, "optional_count": 0})
        if result.is_required:
            entry["required_count"] += 1
        else:
            entry["optional_count"] += 1

    return {
        target: entry
        for target, entry in counts.items()
        if entry["required_count"] + entry["optional_count"] > 1
    }


def get_field_mapping_service() -> FieldMappingService:
    """
    Build a mapping service from current settings.

    A new client per call keeps credentials out of module state.
    """
    settings = get_settings()
    return FieldMappingService(client=build_gemini_client(settings), settings=settings)
