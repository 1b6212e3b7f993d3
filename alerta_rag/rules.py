"""
Business rules and their indexing into the Vector Store.

A rule's name, description, domain and criticality are folded into one
sentence-like text, embedded once, and saved under the rule id.  The
query cache is never involved here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import yaml
from tqdm import tqdm

from .embedding.base import EmbeddingProvider
from .vector.store import VectorStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BusinessRule:
    """The slice of a business rule the retrieval layer needs."""

    id: str
    name: str = ""
    description: str = ""
    domain: Optional[str] = None
    criticality: Optional[str] = None


@dataclass
class IndexSummary:
    total: int = 0
    indexed: int = 0
    skipped: int = 0    # already had an embedding
    failed: int = 0


# ---------------------------------------------------------------------------
# Text building
# ---------------------------------------------------------------------------

def build_embedding_text(rule: BusinessRule) -> str:
    """
    Compose the text embedded for *rule*.

    Name and description carry most of the meaning; domain and
    criticality add context.  Never returns an empty string.
    """
    parts: list[str] = []
    if rule.name and rule.name.strip():
        parts.append(f"{rule.name.strip()}.")
    if rule.description and rule.description.strip():
        parts.append(f"{rule.description.strip()}.")
    if rule.domain:
        parts.append(f"Domain: {rule.domain}.")
    if rule.criticality:
        parts.append(f"Criticality: {rule.criticality}.")

    text = " ".join(parts).strip()
    if not text:
        logger.warning("Rule %s produced empty embedding text", rule.id)
        return f"RULE_WITHOUT_DESCRIPTION_{rule.id}"
    return text


# ---------------------------------------------------------------------------
# YAML catalog
# ---------------------------------------------------------------------------

def _rule_from_mapping(data: dict, source: str) -> Optional[BusinessRule]:
    rule_id = data.get("id")
    if rule_id is None or not str(rule_id).strip():
        logger.warning("Skipping business rule without 'id' in %s", source)
        return None
    rule_id = str(rule_id).strip()

    def _text(key: str) -> Optional[str]:
        value = data.get(key)
        return str(value).strip() if value is not None else None

    return BusinessRule(
        id=rule_id,
        name=_text("name") or rule_id,
        description=_text("description") or "",
        domain=_text("domain"),
        criticality=_text("criticality"),
    )


def load_rules(path: str) -> list[BusinessRule]:
    """
    Read business rules from a YAML file.

    The file holds either a ``businessRules:`` list or a single
    ``businessRule:`` mapping.  Entries without an ``id`` are skipped.

    Raises
    ------
    OSError, yaml.YAMLError
        If the file cannot be read or parsed.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        logger.warning("Rule catalog %s is not a mapping, no rules loaded", path)
        return []

    if "businessRules" in data:
        raw = data.get("businessRules") or []
    elif "businessRule" in data:
        raw = [data["businessRule"]]
    else:
        logger.warning("No 'businessRules' or 'businessRule' section in %s", path)
        return []

    rules: list[BusinessRule] = []
    for item in raw:
        if not isinstance(item, dict):
            logger.warning("Skipping malformed business rule entry in %s: %r", path, item)
            continue
        rule = _rule_from_mapping(item, path)
        if rule is not None:
            rules.append(rule)
    logger.info("Loaded %d business rule(s) from %s", len(rules), path)
    return rules


# ---------------------------------------------------------------------------
# RuleIndexer
# ---------------------------------------------------------------------------

class RuleIndexer:
    """Embeds business rules and saves them in the Vector Store.

    Parameters
    ----------
    provider:
        Embedding provider; must be the one the store was built for.
    store:
        Target Vector Store.
    show_progress:
        Show a tqdm progress bar during :meth:`index_all`.
    """

    def __init__(self, provider: EmbeddingProvider, store: VectorStore,
                 show_progress: bool = False) -> None:
        self._provider = provider
        self._store = store
        self._show_progress = show_progress

    def index_rule(self, rule: BusinessRule) -> bool:
        """(Re-)index one rule.  Returns False if it could not be indexed."""
        try:
            text = build_embedding_text(rule)
            vector = self._provider.embed(text)
        except Exception as exc:
            logger.error("Failed to embed rule %s: %s", rule.id, exc)
            return False
        if vector is None or len(vector) == 0:
            logger.warning("Empty embedding for rule %s", rule.id)
            return False
        if not self._store.save(rule.id, vector):
            return False
        logger.debug("Indexed rule %s (%r) with %d dimensions", rule.id, rule.name, len(vector))
        return True

    def index_all(self, rules: Iterable[BusinessRule], force: bool = False) -> IndexSummary:
        """
        Index every rule in *rules*.

        Rules that already have an embedding (in memory or persisted) are
        skipped unless *force* is set.
        """
        rules = list(rules)
        summary = IndexSummary(total=len(rules))
        if not rules:
            logger.warning("No business rules to index")
            return summary

        logger.info("Indexing %d business rule(s) (force=%s)", len(rules), force)
        iterator = tqdm(rules, desc="Indexing rules", unit="rule",
                        disable=not self._show_progress)
        for rule in iterator:
            if not force and self._store.has_embedding(rule.id):
                summary.skipped += 1
                continue
            if self.index_rule(rule):
                summary.indexed += 1
            else:
                summary.failed += 1

        logger.info(
            "Indexing complete | indexed=%d | skipped=%d | failed=%d | in memory=%d (dim=%d)",
            summary.indexed, summary.skipped, summary.failed,
            self._store.size(), self._provider.dimension(),
        )
        return summary

    def reindex_all(self, rules: Iterable[BusinessRule]) -> IndexSummary:
        """Drop the in-memory embeddings and index every rule again."""
        logger.info("Full re-index requested")
        self._store.clear()
        return self.index_all(rules, force=True)
