from __future__ import annotations

import asyncio
import logging
import random
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Coroutine, TypeVar

from .adjectives import AdjectiveResolver, extract_adjectives
from .blend import blend
from .extract import extract_instruments, extract_overrides, override_tokens
from .lexicon import Lexicon, expand_lexicon
from .mapper import to_generator_params
from .overrides import merge_overrides
from .providers import MusicMetadataProvider, resolve_provider
from .records import FinalParameters, GeneratorContract
from .references import ReferenceResolver, detect_references
from .settings import EngineSettings
from .tokenize import tokenize

_LOGGER = logging.getLogger("promptscore.engine")
_EXECUTOR = ThreadPoolExecutor(max_workers=1)

T = TypeVar("T")


def _run_async(coro: Coroutine[Any, Any, T]) -> T:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    return _EXECUTOR.submit(lambda: asyncio.run(coro)).result()


class PromptEngine:
    """Resolves free-text prompts into generation parameters.

    One engine owns one lexicon that grows across calls. Calls must not overlap on
    the same engine; use separate engines for concurrent callers.
    """

    def __init__(
        self,
        provider: MusicMetadataProvider | None = None,
        *,
        settings: EngineSettings | None = None,
        lexicon: Lexicon | None = None,
        rng: random.Random | None = None,
        strict: bool | None = None,
    ) -> None:
        self._settings = settings if settings is not None else EngineSettings.from_env()
        self._provider = provider if provider is not None else resolve_provider(self._settings)
        self._lexicon = lexicon if lexicon is not None else Lexicon()
        if rng is None:
            rng = random.Random(self._settings.seed)
        self._strict = self._settings.strict if strict is None else strict
        self._adjectives = AdjectiveResolver(self._lexicon, rng=rng, strict=self._strict)
        self._references = ReferenceResolver(
            self._provider,
            artist_track_count=self._settings.artist_track_count,
            album_track_count=self._settings.album_track_count,
            lookup_timeout=self._settings.lookup_timeout,
        )

    @property
    def lexicon(self) -> Lexicon:
        return self._lexicon

    @property
    def provider(self) -> MusicMetadataProvider:
        return self._provider

    def adjectives(self) -> list[str]:
        return self._lexicon.adjectives()

    async def ainterpret(self, prompt: object) -> FinalParameters:
        if not isinstance(prompt, str):
            _LOGGER.debug("Non-text prompt %r treated as empty.", type(prompt).__name__)
            prompt = ""
        _LOGGER.info("Interpreting prompt: %r", prompt)

        tokens = tokenize(prompt)
        adjectives = extract_adjectives(tokens, self._lexicon)
        instruments = extract_instruments(tokens)
        overrides = extract_overrides(override_tokens(prompt))
        references = detect_references(prompt, adjective_words=self._lexicon)
        _LOGGER.debug("Adjectives: %s; instruments: %s", adjectives, instruments)

        resolutions = self._adjectives.resolve_all(adjectives)
        reference_records, warnings = await self._references.resolve(references)
        if reference_records:
            _LOGGER.info("Found %d usable reference(s).", len(reference_records))

        records = [resolution.record for resolution in resolutions] + reference_records
        merged = merge_overrides(blend(records), overrides, instruments)
        expand_lexicon(self._lexicon, resolutions)

        for warning in warnings:
            _LOGGER.debug("Reference warning: %s", warning.message)
        return FinalParameters.from_record(merged, warnings=warnings, prompt=prompt)

    def interpret(self, prompt: object) -> FinalParameters:
        return _run_async(self.ainterpret(prompt))

    def to_generator_params(self, final: FinalParameters) -> GeneratorContract:
        return to_generator_params(final)

    async def aclose(self) -> None:
        aclose = getattr(self._provider, "aclose", None)
        if callable(aclose):
            result = aclose()
            if asyncio.iscoroutine(result):
                await result

    def close(self) -> None:
        _run_async(self.aclose())
