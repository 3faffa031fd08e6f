import asyncio
import logging
from typing import Any

from fencelight.core.context import BlockCounter, HighlightContext
from fencelight.core.diagnostics import NullEmitter
from fencelight.core.languages import (
    LanguageCache,
    LanguageLoader,
    collect_languages,
    normalize_language,
)
from fencelight.core.nodes import Node, code, root


class FakeGrammars:
    def __init__(self, known=("python", "javascript", "rust"), failing=()) -> None:
        self.known = set(known)
        self.failing = set(failing)
        self.fetched: list[str] = []
        self.registered: list[Any] = []

    async def fetch(self, language: str) -> Any:
        self.fetched.append(language)
        if language in self.failing:
            raise ConnectionError(f"grammar server unreachable for {language}")
        if language not in self.known:
            return None
        return f"grammar:{language}"

    def register(self, grammar: Any) -> None:
        self.registered.append(grammar)


class RecordingEmitter(NullEmitter):
    def __init__(self) -> None:
        self.warnings: list[tuple[str, BaseException | None]] = []
        self.events: list[tuple[str, dict[str, Any]]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self.warnings.append((message, exc))

    def event(self, name: str, payload) -> None:
        self.events.append((name, dict(payload)))


def test_normalize_language_defaults_to_text() -> None:
    assert normalize_language(None) == "text"
    assert normalize_language("   ") == "text"
    assert normalize_language(" python ") == "python"


def test_collect_languages_is_distinct_and_ordered() -> None:
    tree = root(
        code("a", "rust"),
        Node("blockquote", children=[code("b", "python")]),
        code("c", "rust"),
        code("d"),
        code("e", "text"),
    )
    assert collect_languages(tree) == ["rust", "python"]


def test_each_language_is_fetched_once() -> None:
    grammars = FakeGrammars()
    cache = LanguageCache()
    loader = LanguageLoader(grammars, cache, emitter=NullEmitter())

    loaded = asyncio.run(loader.load(["python", "python", "javascript"]))
    assert loaded == ["python", "javascript"]
    assert grammars.fetched == ["python", "javascript"]

    assert asyncio.run(loader.load(["python", "javascript"])) == []
    assert grammars.fetched == ["python", "javascript"]
    assert cache.snapshot() == frozenset({"python", "javascript"})


def test_cache_is_shared_between_loaders() -> None:
    cache = LanguageCache()
    first = FakeGrammars()
    second = FakeGrammars()
    asyncio.run(LanguageLoader(first, cache, emitter=NullEmitter()).load(["rust"]))
    asyncio.run(LanguageLoader(second, cache, emitter=NullEmitter()).load(["rust"]))
    assert first.fetched == ["rust"]
    assert second.fetched == []


def test_unknown_language_is_skipped_silently() -> None:
    grammars = FakeGrammars()
    emitter = RecordingEmitter()
    cache = LanguageCache()
    loader = LanguageLoader(grammars, cache, emitter=emitter)

    assert asyncio.run(loader.load(["klingon"])) == []
    assert "klingon" not in cache
    assert emitter.warnings == []
    assert grammars.registered == []


def test_fetch_failure_warns_and_leaves_language_unloaded() -> None:
    grammars = FakeGrammars(failing={"rust"})
    emitter = RecordingEmitter()
    cache = LanguageCache()
    loader = LanguageLoader(grammars, cache, emitter=emitter)

    assert asyncio.run(loader.load(["rust", "python"])) == ["python"]
    assert "rust" not in cache
    assert len(emitter.warnings) == 1
    message, exc = emitter.warnings[0]
    assert message == "Failed to load language rust"
    assert isinstance(exc, ConnectionError)

    asyncio.run(loader.load(["rust"]))
    assert grammars.fetched.count("rust") == 2


def test_fetch_failure_is_logged_by_default(caplog) -> None:
    loader = LanguageLoader(FakeGrammars(failing={"rust"}), LanguageCache())
    with caplog.at_level(logging.WARNING):
        asyncio.run(loader.load(["rust"]))
    assert "Failed to load language rust" in caplog.text


def test_loaded_event_is_emitted() -> None:
    emitter = RecordingEmitter()
    loader = LanguageLoader(FakeGrammars(), LanguageCache(), emitter=emitter)
    asyncio.run(loader.load(["python"]))
    assert emitter.events == [("language_loaded", {"language": "python"})]


def test_sync_supply_is_supported() -> None:
    class SyncGrammars:
        def __init__(self) -> None:
            self.registered: list[str] = []

        def fetch(self, language: str) -> str:
            return language.upper()

        def register(self, grammar: str) -> None:
            self.registered.append(grammar)

    supply = SyncGrammars()
    cache = LanguageCache()
    asyncio.run(LanguageLoader(supply, cache, emitter=NullEmitter()).load(["go"]))
    assert supply.registered == ["GO"]
    assert "go" in cache


def test_cache_add_reports_first_insertion() -> None:
    cache = LanguageCache()
    assert cache.add("python") is True
    assert cache.add("python") is False
    assert len(cache) == 1


def test_block_counter_labels_are_sequential() -> None:
    counter = BlockCounter()
    assert [counter.next_label() for _ in range(3)] == ["hl-1", "hl-2", "hl-3"]
    assert counter.value == 3


def test_block_counter_is_thread_safe() -> None:
    from concurrent.futures import ThreadPoolExecutor

    counter = BlockCounter()
    with ThreadPoolExecutor(max_workers=8) as pool:
        labels = list(pool.map(lambda _: counter.next_label(), range(800)))
    assert len(set(labels)) == 800
    assert counter.value == 800


def test_fresh_context_is_isolated() -> None:
    first = HighlightContext()
    second = HighlightContext()
    first.languages.add("python")
    first.counter.next_label()
    assert "python" not in second.languages
    assert second.counter.value == 0


def test_cache_scopes_are_independent() -> None:
    cache = LanguageCache()
    cache.add("python", scope="registry-a")
    assert cache.is_loaded("python", "registry-a")
    assert not cache.is_loaded("python", "registry-b")
    assert "python" not in cache

    class ScopedGrammars(FakeGrammars):
        cache_scope = "registry-b"

    grammars = ScopedGrammars()
    asyncio.run(LanguageLoader(grammars, cache, emitter=NullEmitter()).load(["python"]))
    assert grammars.fetched == ["python"]
    assert cache.snapshot("registry-b") == frozenset({"python"})
    assert len(cache) == 2
