"""
Tests for alerta_rag.rules: catalog loading, embedding text and indexing.
"""

from unittest.mock import MagicMock

import numpy as np
import pytest
import yaml

from alerta_rag.embedding.dummy import DummyEmbeddingProvider
from alerta_rag.rules import BusinessRule, RuleIndexer, build_embedding_text, load_rules
from alerta_rag.vector.backing_store import SQLiteBackingStore
from alerta_rag.vector.store import VectorStore


CATALOG = """
businessRules:
  - id: BR-001
    name: Late payment fee
    description: A fee of 2% applies after the due date
    domain: billing
    criticality: HIGH
  - id: BR-002
    description: Credit limit cannot exceed income
  - name: Missing id
  - just a string
  - id: 3
    name: Numeric id
"""


# ---------------------------------------------------------------------------
# build_embedding_text
# ---------------------------------------------------------------------------

class TestBuildEmbeddingText:

    def test_full_rule(self):
        rule = BusinessRule("BR-1", "Late fee", "Charged after due date", "billing", "HIGH")
        assert build_embedding_text(rule) == (
            "Late fee. Charged after due date. Domain: billing. Criticality: HIGH."
        )

    def test_optional_parts_are_omitted(self):
        assert build_embedding_text(BusinessRule("BR-1", "Late fee")) == "Late fee."

    def test_whitespace_is_trimmed(self):
        rule = BusinessRule("BR-1", "  Late fee ", "  ")
        assert build_embedding_text(rule) == "Late fee."

    def test_empty_rule_gets_placeholder(self):
        assert build_embedding_text(BusinessRule("BR-9")) == "RULE_WITHOUT_DESCRIPTION_BR-9"


# ---------------------------------------------------------------------------
# load_rules
# ---------------------------------------------------------------------------

class TestLoadRules:

    def test_list_catalog(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(CATALOG, encoding="utf-8")
        rules = load_rules(str(path))

        assert [r.id for r in rules] == ["BR-001", "BR-002", "3"]
        assert rules[0].domain == "billing"
        assert rules[0].criticality == "HIGH"
        assert rules[1].name == "BR-002"
        assert rules[1].domain is None

    def test_single_rule(self, tmp_path):
        path = tmp_path / "rule.yaml"
        path.write_text("businessRule:\n  id: BR-7\n  name: Single\n", encoding="utf-8")
        assert load_rules(str(path)) == [BusinessRule("BR-7", "Single", "")]

    @pytest.mark.parametrize("text", ["", "other: 1\n", "- a\n- b\n", "businessRules:\n"])
    def test_no_rules(self, tmp_path, text):
        path = tmp_path / "rules.yaml"
        path.write_text(text, encoding="utf-8")
        assert load_rules(str(path)) == []

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            load_rules(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("businessRules: [unclosed\n", encoding="utf-8")
        with pytest.raises(yaml.YAMLError):
            load_rules(str(path))


# ---------------------------------------------------------------------------
# RuleIndexer
# ---------------------------------------------------------------------------

class TestRuleIndexer:

    RULES = [
        BusinessRule("BR-1", "Late payment fee", "Fee after due date"),
        BusinessRule("BR-2", "Credit limit", "Limit based on income"),
    ]

    def _indexer(self, backing=None):
        provider = DummyEmbeddingProvider()
        store = VectorStore(backing, provider_tag=provider.tag, dimension=provider.dimension())
        return RuleIndexer(provider, store), store, provider

    def test_index_all(self, dict_backing):
        indexer, store, provider = self._indexer(dict_backing)
        summary = indexer.index_all(self.RULES)

        assert (summary.total, summary.indexed, summary.skipped, summary.failed) == (2, 2, 0, 0)
        assert store.size() == 2
        assert dict_backing.count() == 2
        expected = provider.embed(build_embedding_text(self.RULES[0]))
        assert np.array_equal(store.get_embedding("BR-1"), expected)

    def test_existing_embeddings_are_skipped(self, dict_backing):
        indexer, _, _ = self._indexer(dict_backing)
        indexer.index_all(self.RULES[:1])
        summary = indexer.index_all(self.RULES)
        assert (summary.indexed, summary.skipped) == (1, 1)

    def test_force_reindexes(self, dict_backing):
        indexer, _, _ = self._indexer(dict_backing)
        indexer.index_all(self.RULES)
        summary = indexer.index_all(self.RULES, force=True)
        assert (summary.indexed, summary.skipped) == (2, 0)

    def test_persisted_rules_are_skipped_after_restart(self, dict_backing):
        self._indexer(dict_backing)[0].index_all(self.RULES)
        indexer, store, _ = self._indexer(dict_backing)
        assert store.size() == 2
        assert indexer.index_all(self.RULES).skipped == 2

    def test_rules_from_another_provider_are_reindexed(self, tmp_path):
        db_path = str(tmp_path / "vectors.db")
        other = VectorStore(SQLiteBackingStore(db_path), provider_tag="OTHER", dimension=128)
        other.save("BR-1", np.ones(128, dtype=np.float32))

        provider = DummyEmbeddingProvider()
        store = VectorStore(SQLiteBackingStore(db_path), provider_tag=provider.tag,
                            dimension=provider.dimension())
        summary = RuleIndexer(provider, store).index_all(self.RULES[:1])

        assert (summary.indexed, summary.skipped) == (1, 0)
        query = provider.embed(build_embedding_text(self.RULES[0]))
        assert store.find_top_k(query, 5) == ["BR-1"]

    def test_undecodable_row_is_reindexed(self, dict_backing):
        dict_backing.save("BR-1", 128, "DUMMY", b"\x00" * 7)
        indexer, store, _ = self._indexer(dict_backing)
        assert store.last_hydration.skipped == 1

        summary = indexer.index_all(self.RULES[:1])
        assert (summary.indexed, summary.skipped) == (1, 0)
        assert store.get_embedding("BR-1") is not None

    def test_reindex_all(self, dict_backing):
        indexer, store, _ = self._indexer(dict_backing)
        indexer.index_all(self.RULES)
        summary = indexer.reindex_all(self.RULES[:1])
        assert summary.indexed == 1
        assert store.size() == 1

    def test_provider_failure_is_counted(self):
        provider = MagicMock(tag="OPENAI")
        provider.embed.side_effect = [RuntimeError("quota"), np.ones(4, dtype=np.float32)]
        provider.dimension.return_value = 4
        store = VectorStore(provider_tag="OPENAI", dimension=4)

        summary = RuleIndexer(provider, store).index_all(self.RULES)
        assert (summary.indexed, summary.failed) == (1, 1)
        assert store.find_top_k(np.ones(4), 5) == ["BR-2"]

    def test_rejected_vector_is_counted_as_failure(self):
        provider = MagicMock(tag="DUMMY")
        provider.embed.return_value = np.ones(3, dtype=np.float32)
        provider.dimension.return_value = 4
        store = VectorStore(dimension=4)
        assert RuleIndexer(provider, store).index_rule(self.RULES[0]) is False

    def test_empty_input(self):
        indexer, _, _ = self._indexer()
        assert indexer.index_all([]).total == 0

    def test_progress_bar(self, capsys):
        provider = DummyEmbeddingProvider()
        store = VectorStore(dimension=provider.dimension())
        RuleIndexer(provider, store, show_progress=True).index_all(self.RULES)
        assert "Indexing rules" in capsys.readouterr().err
