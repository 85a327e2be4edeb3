"""Folder prefix probing and free-text document routing.

Candidate prefixes are probed in order; the first prefix holding at least
one real file wins. Listing failures on one candidate never abort the probe.
"""

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Iterable, Sequence

from pydantic import BaseModel, Field

from copilot.core.config import get_settings
from copilot.core.exceptions import UpstreamError
from copilot.observability import track_external
from copilot.solutions.matcher import SolutionMatcher
from copilot.solutions.models import CanonicalSolution
from copilot.storage.object_store import ObjectStore
from copilot.storage.paths import (
    DocType,
    Visibility,
    basename,
    doc_type_from_path,
    is_folder_like,
    is_hidden,
    normalize_prefix,
    title_from_path,
    visibility_from_path,
)
from copilot.storage.routing import Product, candidate_prefixes, match_product_name

logger = logging.getLogger(__name__)

GLOBAL_SPEC_PATH = "spec/anchor-products-spec-v1.docx"


class ProbeStatus(str, Enum):
    FOUND = "found"
    EMPTY = "empty"
    UNREACHABLE = "unreachable"


class RoutedFile(BaseModel):
    """A file surfaced to the user from object storage."""

    path: str
    name: str
    doc_type: DocType
    title: str
    visibility: Visibility

    @classmethod
    def from_path(cls, path: str) -> "RoutedFile":
        return cls(
            path=path,
            name=basename(path),
            doc_type=doc_type_from_path(path),
            title=title_from_path(path),
            visibility=visibility_from_path(path),
        )


class ProbeResult(BaseModel):
    """Tagged outcome of probing a list of candidate prefixes.

    ``files`` only holds files discovered under ``prefix``; ``documents``
    additionally carries the global spec document for FOUND and EMPTY.
    """

    status: ProbeStatus
    prefix: str | None = None
    tried: list[str] = Field(default_factory=list)
    files: list[RoutedFile] = Field(default_factory=list)
    documents: list[RoutedFile] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)


class RouteResult(BaseModel):
    """Where a free-text topic was routed and what was found there."""

    topic: str
    product: str | None = None
    solution_key: str | None = None
    folder: str | None = None
    probe: ProbeResult | None = None


class FolderPrefixResolver:
    """Probe candidate prefixes against an object store."""

    def __init__(
        self,
        store: ObjectStore,
        timeout_seconds: float | None = None,
        max_depth: int | None = None,
        global_documents: Sequence[str] = (GLOBAL_SPEC_PATH,),
    ):
        settings = get_settings()
        self.store = store
        self.timeout_seconds = timeout_seconds or settings.storage_timeout_seconds
        self.max_depth = max_depth if max_depth is not None else settings.storage_max_depth
        self.global_documents = tuple(global_documents)

    async def list_files(self, prefix: str) -> list[str]:
        """Recursively list file paths under ``prefix`` (breadth first).

        Raises:
            UpstreamError: If a listing call fails.
        """
        root = normalize_prefix(prefix)
        if not root:
            return []

        files: set[str] = set()
        queue: deque[tuple[str, int]] = deque([(root, 0)])
        seen: set[str] = set()

        while queue:
            directory, depth = queue.popleft()
            if directory in seen:
                continue
            seen.add(directory)

            async with track_external("storage", "list"):
                entries = await self.store.list(directory)

            for entry in entries:
                name = entry.name.strip().strip("/")
                if not name:
                    continue
                full_path = f"{directory}/{name}"
                if entry.is_folder:
                    if depth < self.max_depth:
                        queue.append((full_path, depth + 1))
                elif not is_folder_like(full_path) and not is_hidden(full_path):
                    files.add(full_path)

        return sorted(files)

    async def _probe_one(self, prefix: str) -> list[str]:
        return await asyncio.wait_for(self.list_files(prefix), timeout=self.timeout_seconds)

    async def probe(
        self,
        prefixes: Iterable[str],
        include_internal: bool = True,
    ) -> ProbeResult:
        """Probe prefixes in order and stop at the first one with files."""
        candidates = [p for p in (normalize_prefix(x) for x in prefixes) if p]
        tried: list[str] = []
        errors: dict[str, str] = {}

        for prefix in candidates:
            tried.append(prefix)
            try:
                paths = await self._probe_one(prefix)
            except asyncio.TimeoutError:
                logger.warning(f"Storage probe timed out for prefix '{prefix}'")
                errors[prefix] = "timeout"
                continue
            except UpstreamError as e:
                logger.warning(f"Storage probe failed for prefix '{prefix}': {e.message}")
                errors[prefix] = e.message
                continue
            except Exception as e:
                logger.warning(f"Storage probe error for prefix '{prefix}': {type(e).__name__}: {e}")
                errors[prefix] = str(e) or type(e).__name__
                continue

            files = [RoutedFile.from_path(path) for path in paths]
            if not include_internal:
                files = [f for f in files if f.visibility is Visibility.PUBLIC]

            if files:
                logger.debug(f"Probe found {len(files)} files under '{prefix}'")
                return ProbeResult(
                    status=ProbeStatus.FOUND,
                    prefix=prefix,
                    tried=tried,
                    files=files,
                    documents=self._with_global_documents(files),
                    errors=errors,
                )

        if candidates and len(errors) == len(candidates):
            logger.warning(f"Storage unreachable for all {len(candidates)} candidate prefixes")
            return ProbeResult(
                status=ProbeStatus.UNREACHABLE,
                prefix=candidates[0],
                tried=tried,
                errors=errors,
            )

        return ProbeResult(
            status=ProbeStatus.EMPTY,
            prefix=candidates[0] if candidates else None,
            tried=tried,
            documents=self._with_global_documents([]),
            errors=errors,
        )

    def _with_global_documents(self, files: list[RoutedFile]) -> list[RoutedFile]:
        documents = list(files)
        known = {f.path for f in files}
        for path in self.global_documents:
            if path not in known:
                documents.append(RoutedFile.from_path(path))
        return documents


class DocumentRouter:
    """Route free text to a storage folder and probe it.

    A product named in the text (e.g. "U2400 EPDM") takes precedence over
    the solution taxonomy.
    """

    def __init__(
        self,
        resolver: FolderPrefixResolver,
        matcher: SolutionMatcher,
        fanout_limit: int | None = None,
    ):
        self.resolver = resolver
        self.matcher = matcher
        self.fanout_limit = fanout_limit or get_settings().route_fanout_limit

    def candidates_for(
        self,
        text: str,
        solution: CanonicalSolution | None = None,
    ) -> RouteResult:
        """Decide where to look without touching storage.

        ``solution`` is used when the text itself names neither a product nor
        a solution, e.g. a bare answer to a follow-up question.
        """
        product_name = match_product_name(text)
        if product_name:
            prefixes = candidate_prefixes(Product(name=product_name))
            return RouteResult(topic=text, product=product_name, folder=prefixes[0])

        solution = self.matcher.resolve(text) or solution
        if solution:
            return RouteResult(topic=text, solution_key=solution.key, folder=solution.folder)

        return RouteResult(topic=text)

    async def route(
        self,
        text: str,
        include_internal: bool = True,
        solution: CanonicalSolution | None = None,
    ) -> RouteResult:
        result = self.candidates_for(text, solution)
        if result.product:
            prefixes = candidate_prefixes(Product(name=result.product))
        elif result.folder:
            prefixes = [result.folder]
        else:
            return result

        result.probe = await self.resolver.probe(prefixes, include_internal=include_internal)
        return result

    async def route_many(
        self,
        topics: Sequence[str],
        include_internal: bool = True,
    ) -> list[RouteResult]:
        """Route independent topics concurrently; results keep input order."""
        semaphore = asyncio.Semaphore(self.fanout_limit)

        async def _bounded(topic: str) -> RouteResult:
            async with semaphore:
                return await self.route(topic, include_internal=include_internal)

        return list(await asyncio.gather(*(_bounded(topic) for topic in topics)))
