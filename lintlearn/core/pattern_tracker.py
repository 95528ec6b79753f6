"""Frequency tracking and clustering of recurring lint diagnostics.

Each incoming :class:`LintIssue` is reduced to a :class:`PatternSignature` whose
message has identifiers, literals and numbers replaced by placeholders, so
``Variable 'x' is unused`` and ``Variable 'y' is unused`` count as the same
pattern. Signatures are then grouped into :class:`PatternCluster` candidates
for rule generation.
"""

from __future__ import annotations

import hashlib
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import PurePath
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from lintlearn.config.settings import PatternTrackingConfig
from lintlearn.core.errors import ProcessingError
from lintlearn.rules.base_rule import LintIssue, LintSeverity
from lintlearn.templates.library import extract_theme

__all__ = [
    "PatternSignature",
    "FrequencyTrendPoint",
    "PatternFrequency",
    "PatternCluster",
    "AnalysisSummary",
    "PatternFrequencyTracker",
    "SimilarityFn",
    "normalize_message",
    "token_jaccard",
    "signature_similarity",
    "RULE_NAME_PREFIX",
]

logger = logging.getLogger(__name__)

RULE_NAME_PREFIX = "lintlearn"

_QUOTED_RE = re.compile(r"(?<!\w)(['\"`])[^'\"`\n]*?\1(?!\w)")
_CODE_IDENT_RE = re.compile(r"(?<![\w<])(?:[a-z][a-z0-9]*[A-Z]\w*|[A-Za-z]\w*_\w*|_\w+|[A-Za-z]+\d\w*)(?![\w>])")
_NUMBER_RE = re.compile(
    r"(?<![\w<])(?:0[xX][0-9a-fA-F]+|0[bB][01]+|0[oO][0-7]+|\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)n?(?![\w>])"
)
_TOKEN_RE = re.compile(r"<[A-Z]+>|\w+")
_NODE_KEYWORDS = ("variable", "function", "class", "parameter", "property", "name", "import", "type")
_KEYWORD_IDENT_RE = re.compile(
    "(?:" + "|".join(rf"(?<=\b{kw}\s)" for kw in _NODE_KEYWORDS) + r")[A-Za-z_$][\w$]*(?![\w$>])",
    re.IGNORECASE,
)

# Words that may follow a node keyword without naming a symbol.
_PROSE_WORDS = frozenset({
    "a", "an", "the", "is", "are", "was", "were", "be", "been", "has", "have", "had", "must", "should",
    "can", "cannot", "may", "will", "not", "no", "on", "of", "in", "for", "to", "from", "with", "without",
    "and", "or", "but", "as", "at", "by", "that", "this", "which", "any", "unknown", "never", "void",
    "annotation", "annotations", "assertion", "assertions", "argument", "arguments", "declaration",
    "declarations", "expression", "expressions", "call", "calls", "member", "members", "body", "return",
    "returns", "keyword", "default", "definition", "signature", "parameters", "properties", "names",
    "imports", "types", "variables", "functions", "classes", "name", "type", "import", "parameter",
    "property", "variable", "function", "class", "export", "exports", "declared", "defined", "used",
    "unused", "only", "itself", "collision", "collisions", "conflict", "conflicts", "mismatch", "mismatches",
    "check", "checks", "checking", "guard", "guards", "alias", "aliases", "inference", "error", "errors", "safety",
    "count",
})

_NODE_TYPE_KEYWORDS: list[tuple[str, str]] = [
    ("function", "Function"),
    ("variable", "Variable"),
    ("class", "Class"),
    ("import", "Import"),
    ("export", "Export"),
    ("type", "Type"),
    ("interface", "Interface"),
]


def _keyword_ident(match: re.Match[str]) -> str:
    word = match.group(0)
    return word if word.lower() in _PROSE_WORDS else "<VAR>"


def normalize_message(message: str) -> str:
    """Replace identifiers, literals and numbers in *message* with placeholders."""
    pattern = _QUOTED_RE.sub("'<VAR>'", message)
    pattern = _KEYWORD_IDENT_RE.sub(_keyword_ident, pattern)
    pattern = _CODE_IDENT_RE.sub("<VAR>", pattern)
    return _NUMBER_RE.sub("<NUMBER>", pattern)


def _extract_node_type(message: str) -> str | None:
    lowered = message.lower()
    for keyword, node_type in _NODE_TYPE_KEYWORDS:
        if keyword in lowered:
            return node_type
    return None


def _file_type(file_path: str) -> str:
    suffix = PurePath(file_path).suffix
    return suffix[1:] if suffix else "unknown"


def _stable_hash(*parts: str) -> str:
    return hashlib.sha1("\x1f".join(parts).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class PatternSignature:
    """Identifier-agnostic fingerprint of a diagnostic."""

    message_pattern: str
    severity: LintSeverity
    file_type: str
    node_type: str | None = None
    context_hash: int = 0

    @classmethod
    def from_issue(cls, issue: LintIssue, file_type: str) -> PatternSignature:
        message_pattern = normalize_message(issue.message)
        return cls(
            message_pattern=message_pattern,
            severity=issue.severity,
            file_type=file_type,
            node_type=_extract_node_type(message_pattern),
            context_hash=int(_stable_hash(message_pattern, file_type)[:16], 16),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "message_pattern": self.message_pattern,
            "severity": self.severity.value,
            "file_type": self.file_type,
            "node_type": self.node_type,
            "context_hash": self.context_hash,
        }


@dataclass(frozen=True)
class FrequencyTrendPoint:
    timestamp: datetime
    occurrence_count: int
    files_count: int


@dataclass
class PatternFrequency:
    signature: PatternSignature
    first_seen: datetime
    last_seen: datetime
    total_occurrences: int = 0
    affected_files: list[str] = field(default_factory=list)
    trend: list[FrequencyTrendPoint] = field(default_factory=list)
    confidence_score: float = 0.0
    _file_set: set[str] = field(default_factory=set, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._file_set.update(self.affected_files)

    @property
    def files_affected(self) -> int:
        return len(self.affected_files)

    def record(self, file_path: str, now: datetime) -> None:
        self.total_occurrences += 1
        self.last_seen = now
        if file_path not in self._file_set:
            self._file_set.add(file_path)
            self.affected_files.append(file_path)


@dataclass(frozen=True)
class PatternCluster:
    cluster_id: str
    primary_pattern: PatternSignature
    related_patterns: tuple[PatternSignature, ...]
    total_frequency: int
    cohesion_score: float
    suggested_rule_name: str
    suggested_rule_description: str
    generation_priority: int
    files_affected: int = 0

    @property
    def size(self) -> int:
        return len(self.related_patterns) + 1

    @property
    def members(self) -> tuple[PatternSignature, ...]:
        return (self.primary_pattern, *self.related_patterns)


@dataclass(frozen=True)
class AnalysisSummary:
    timestamp: datetime
    total_patterns: int
    total_occurrences: int
    clusters_formed: int


SimilarityFn = Callable[[PatternSignature, PatternSignature], float]


def token_jaccard(left: str, right: str) -> float:
    """Jaccard similarity of the word/placeholder tokens of two messages."""
    a = set(_TOKEN_RE.findall(left.lower()))
    b = set(_TOKEN_RE.findall(right.lower()))
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


def signature_similarity(left: PatternSignature, right: PatternSignature) -> float:
    """Weighted similarity: message tokens 0.5, severity 0.2, file type 0.15, node type 0.15."""
    score = 0.5 * token_jaccard(left.message_pattern, right.message_pattern)
    if left.severity == right.severity:
        score += 0.2
    if left.file_type == right.file_type:
        score += 0.15
    if left.node_type is not None and left.node_type == right.node_type:
        score += 0.15
    elif left.node_type is None and right.node_type is None:
        score += 0.10
    return score


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PatternFrequencyTracker:
    """Single-writer store of pattern frequencies.

    Not safe for concurrent mutation; callers feeding issues from several
    producers must serialize calls to :meth:`process_lint_issues`.
    """

    def __init__(
        self,
        config: PatternTrackingConfig | None = None,
        similarity: SimilarityFn | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or PatternTrackingConfig()
        self._similarity: SimilarityFn = similarity or signature_similarity
        self._clock = clock or _utcnow
        self._frequencies: dict[PatternSignature, PatternFrequency] = {}
        self._clusters: list[PatternCluster] = []

    @property
    def frequencies(self) -> Mapping[PatternSignature, PatternFrequency]:
        return MappingProxyType(self._frequencies)

    @property
    def clusters(self) -> tuple[PatternCluster, ...]:
        return tuple(self._clusters)

    def reconfigure(self, config: PatternTrackingConfig) -> None:
        self.config = config

    def create_signature(self, issue: LintIssue, file_path: str) -> PatternSignature:
        return PatternSignature.from_issue(issue, _file_type(file_path))

    def process_lint_issues(self, issues: Iterable[LintIssue], file_path: str) -> None:
        now = self._clock()
        touched: dict[PatternSignature, PatternFrequency] = {}
        for issue in issues:
            signature = self.create_signature(issue, file_path)
            frequency = self._frequencies.get(signature)
            if frequency is None:
                frequency = PatternFrequency(signature=signature, first_seen=now, last_seen=now)
                self._frequencies[signature] = frequency
            frequency.record(file_path, now)
            touched[signature] = frequency

        for frequency in touched.values():
            frequency.trend.append(FrequencyTrendPoint(
                timestamp=now,
                occurrence_count=frequency.total_occurrences,
                files_count=frequency.files_affected,
            ))
        for frequency in self._frequencies.values():
            frequency.confidence_score = self._confidence(frequency, now)

        if touched:
            logger.debug("Processed issues from %s: %d signature(s) updated", file_path, len(touched))

    @staticmethod
    def _confidence(frequency: PatternFrequency, now: datetime) -> float:
        occurrence_factor = min(frequency.total_occurrences / 100.0, 1.0)
        spread_factor = min(frequency.files_affected / 50.0, 1.0)
        age_days = max((now - frequency.first_seen).days, 0)
        age_factor = min(age_days / 30.0, 1.0)
        return min(occurrence_factor * 0.4 + spread_factor * 0.4 + age_factor * 0.2, 1.0)

    def _similar(self, left: PatternSignature, right: PatternSignature) -> float:
        value = self._similarity(left, right)
        if math.isnan(value) or not 0.0 <= value <= 1.0:
            raise ProcessingError(
                f"Similarity function returned {value!r} for '{left.message_pattern}' / '{right.message_pattern}'"
            )
        return value

    def perform_clustering_analysis(self) -> list[PatternCluster]:
        ordered = sorted(
            self._frequencies.values(),
            key=lambda f: (-f.total_occurrences, f.signature.message_pattern, f.signature.file_type),
        )
        clustered: set[PatternSignature] = set()
        clusters: list[PatternCluster] = []

        for seed in ordered:
            if seed.signature in clustered:
                continue
            clustered.add(seed.signature)
            members: list[tuple[PatternFrequency, float]] = []
            for other in ordered:
                if other.signature in clustered:
                    continue
                similarity = self._similar(seed.signature, other.signature)
                if similarity >= self.config.similarity_threshold:
                    clustered.add(other.signature)
                    members.append((other, similarity))
            clusters.append(self._build_cluster(seed, members))

        self._clusters = clusters
        logger.info("Clustering formed %d cluster(s) from %d signature(s)", len(clusters), len(ordered))
        return list(clusters)

    def _build_cluster(self, primary: PatternFrequency, members: list[tuple[PatternFrequency, float]]) -> PatternCluster:
        total = primary.total_occurrences + sum(m.total_occurrences for m, _ in members)
        files = set(primary.affected_files)
        for member, _ in members:
            files.update(member.affected_files)
        cohesion = sum(s for _, s in members) / len(members) if members else 1.0
        cohesion = round(min(cohesion, 1.0), 4)

        signature = primary.signature
        theme = extract_theme(signature.message_pattern)
        description = (
            f"Detects {theme.value} patterns occurring {total} times across "
            f"{len(members) + 1} variation(s) in {len(files)} file(s). "
            f"Primary pattern: '{signature.message_pattern}'"
        )
        digest = _stable_hash(signature.message_pattern, signature.severity.value, signature.file_type, signature.node_type or "")
        return PatternCluster(
            cluster_id=f"cluster-{digest[:16]}",
            primary_pattern=signature,
            related_patterns=tuple(m.signature for m, _ in members),
            total_frequency=total,
            cohesion_score=cohesion,
            suggested_rule_name=f"{RULE_NAME_PREFIX}-{theme.value}",
            suggested_rule_description=description,
            generation_priority=self._priority(total, signature.severity, len(files)),
            files_affected=len(files),
        )

    def _priority(self, total: int, severity: LintSeverity, files: int) -> int:
        frequency_factor = min(total / (2 * self.config.min_frequency), 1.0)
        spread_factor = min(files / (2 * self.config.min_files), 1.0)
        score = 10 * (0.5 * frequency_factor + 0.25 * severity.weight + 0.25 * spread_factor)
        return max(0, min(10, round(score)))

    def cleanup_old_patterns(self) -> int:
        cutoff = self._clock() - timedelta(days=self.config.max_age_days)
        stale = [sig for sig, freq in self._frequencies.items() if freq.last_seen < cutoff]
        for sig in stale:
            del self._frequencies[sig]
        if stale:
            logger.info("Removed %d pattern(s) not seen since %s", len(stale), cutoff.isoformat())
        return len(stale)

    def get_analysis_summary(self) -> AnalysisSummary:
        return AnalysisSummary(
            timestamp=self._clock(),
            total_patterns=len(self._frequencies),
            total_occurrences=sum(f.total_occurrences for f in self._frequencies.values()),
            clusters_formed=len(self._clusters),
        )

    def get_patterns_for_rule_generation(self) -> list[PatternSignature]:
        eligible = [
            f for f in self._frequencies.values()
            if f.total_occurrences >= self.config.min_frequency and f.confidence_score >= self.config.min_confidence
        ]
        eligible.sort(key=lambda f: (-f.total_occurrences, f.signature.message_pattern))
        return [f.signature for f in eligible]
