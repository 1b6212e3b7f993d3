import pytest

from alerta_rag.normalize import normalize_query


@pytest.mark.parametrize("raw, expected", [
    ("  Cálculo   de  JUROS ", "calculo de juros"),
    ("Ação\tde\ncobrança", "acao de cobranca"),
    ("ÉÈÊË ñ ç", "eeee n c"),
    ("already normal", "already normal"),
    ("", ""),
    ("   ", ""),
    (None, ""),
])
def test_normalize_query(raw, expected):
    assert normalize_query(raw) == expected


def test_equivalent_queries_share_a_key():
    assert normalize_query("Taxa de Juros") == normalize_query("  taxa  de   júros")


def test_idempotent():
    once = normalize_query(" Regra de Crédito ")
    assert normalize_query(once) == once
