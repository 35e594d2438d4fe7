"""
Text-inference adapter (Anthropic Claude).

One adapter covers the three text capabilities the pipeline needs:
category classification and year inference (batched, keyed by record id)
and translation (one record, several locales).
"""

from pathlib import Path

import anthropic
from loguru import logger

from spot_pipeline.config import LANGUAGE_NAMES, SPOT_CATEGORIES, DEFAULT_CATEGORY
from spot_pipeline.errors import RateLimited, TransientProviderError
from spot_pipeline.providers.schemas import (
    CategoryResponse,
    LocaleText,
    TranslationResponse,
    YearEstimate,
    YearResponse,
    parse_response,
)
from spot_pipeline.rate_control import RateController
from spot_pipeline.records import SpotRecord
from spot_pipeline.years import parse_year_text

PROMPT_DIR = Path(__file__).parent / "prompts"

# Categories the classifier may assign; the default is never an answer
CLASSIFIABLE_CATEGORIES = [c for c in SPOT_CATEGORIES if c != DEFAULT_CATEGORY]


def _load_prompt(name: str) -> str:
    return (PROMPT_DIR / f"{name}.txt").read_text(encoding="utf-8")


def _retry_after(error: anthropic.APIStatusError) -> float | None:
    try:
        return float(error.response.headers.get("retry-after", ""))
    except (AttributeError, ValueError):
        return None


def _target_lines(records: list[SpotRecord]) -> str:
    lines = []
    for record in records:
        country = record.country or record.country_ja or ""
        suffix = f" ({country})" if country else ""
        lines.append(f"{record.id}: {record.search_name}{suffix}")
    return "\n".join(lines)


class TextInferenceAdapter:
    """Natural-language instruction in, validated structured result out."""

    provider = "inference"

    def __init__(
        self,
        client: anthropic.Anthropic,
        model: str,
        rate: RateController,
        max_tokens: int = 4096,
    ):
        self.client = client
        self.model = model
        self.rate = rate
        self.max_tokens = max_tokens

    def complete(self, prompt: str) -> str:
        """
        Send one prompt and return the response text.

        Raises:
            RateLimited: provider signalled too many requests
            TransientProviderError: any other API or connection failure
        """
        self.rate.throttle(self.provider)

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.RateLimitError as e:
            raise RateLimited(str(e), provider=self.provider, retry_after=_retry_after(e)) from e
        except anthropic.APIError as e:
            raise TransientProviderError(f"Anthropic API error: {e}", provider=self.provider) from e

        return "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )

    def classify_categories(self, records: list[SpotRecord]) -> dict[int, str]:
        """Classify a batch of records. Ids the model omits are absent from the result."""
        if not records:
            return {}

        prompt = _load_prompt("categories").format(targets=_target_lines(records))
        parsed = parse_response(self.complete(prompt), CategoryResponse)

        results = {}
        for record_id, value in self._by_id(records, parsed.root).items():
            category = (value or "").strip().lower()
            if category in CLASSIFIABLE_CATEGORIES:
                results[record_id] = category
            elif category:
                logger.debug(f"Ignoring category {value!r} for spot {record_id}")
        return results

    def infer_years(self, records: list[SpotRecord]) -> dict[int, int]:
        """Infer signed founding years for a batch. Unknown years are absent."""
        if not records:
            return {}

        prompt = _load_prompt("years").format(targets=_target_lines(records))
        parsed = parse_response(self.complete(prompt), YearResponse)

        results = {}
        for record_id, value in self._by_id(records, parsed.root).items():
            if isinstance(value, YearEstimate):
                year = value.to_signed()
            elif isinstance(value, str):
                year = parse_year_text(value)
            else:
                year = value
            if year is not None:
                results[record_id] = year
        return results

    def translate(self, record: SpotRecord, languages: list[str]) -> dict[str, LocaleText]:
        """Name and description of one record in each requested language."""
        if not languages:
            return {}

        prompt = _load_prompt("translate").format(
            languages=", ".join(LANGUAGE_NAMES[lang] for lang in languages),
            codes=", ".join(languages),
            name=record.base_name,
            country=record.country or record.country_ja or "unknown",
            description=record.best_description or "",
        )
        parsed = parse_response(self.complete(prompt), TranslationResponse)

        missing = [lang for lang in languages if lang not in parsed.root]
        if missing:
            logger.debug(f"Translation for spot {record.id} omitted {', '.join(missing)}")
        return {lang: text for lang, text in parsed.root.items() if lang in languages}

    @staticmethod
    def _by_id(records: list[SpotRecord], values: dict) -> dict:
        """Map response keys back to the batch's record ids, dropping strangers."""
        wanted = {str(record.id): record.id for record in records}
        mapped = {}
        for key, value in values.items():
            record_id = wanted.get(str(key).strip())
            if record_id is None:
                logger.debug(f"Response contained unknown id {key!r}")
                continue
            mapped[record_id] = value
        return mapped
