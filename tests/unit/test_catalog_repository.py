from unittest.mock import MagicMock

import boutique.catalog.repository as repo


class _Resp:
    def __init__(self, data=None):
        self.data = data


def _stock_client(reads, updates):
    """reads: stocks lus successivement ; updates: lignes renvoyées par chaque UPDATE conditionnel."""
    client = MagicMock()
    table = client.table.return_value
    select_chain = table.select.return_value.eq.return_value.limit.return_value
    select_chain.execute.side_effect = [_Resp([{"stock_quantity": s}] if s is not None else []) for s in reads]
    update_chain = table.update.return_value.eq.return_value.eq.return_value
    update_chain.execute.side_effect = [_Resp(u) for u in updates]
    return client, table


def test_decrement_stock_compare_and_set(monkeypatch):
    client, table = _stock_client(reads=[5], updates=[[{"id": "p1", "stock_quantity": 3}]])
    monkeypatch.setattr("boutique.infra.supabase_client.get_service_supabase", lambda: client)

    assert repo.decrement_stock("p1", 2) is True
    table.update.assert_called_once_with({"stock_quantity": 3})
    table.update.return_value.eq.return_value.eq.assert_called_once_with("stock_quantity", 5)


def test_decrement_stock_retries_after_concurrent_write(monkeypatch):
    client, table = _stock_client(reads=[5, 4], updates=[[], [{"id": "p1"}]])
    monkeypatch.setattr("boutique.infra.supabase_client.get_service_supabase", lambda: client)

    assert repo.decrement_stock("p1", 2) is True
    assert [c.args[0] for c in table.update.call_args_list] == [{"stock_quantity": 3}, {"stock_quantity": 2}]


def test_decrement_stock_never_negative(monkeypatch):
    client, table = _stock_client(reads=[1], updates=[])
    monkeypatch.setattr("boutique.infra.supabase_client.get_service_supabase", lambda: client)

    assert repo.decrement_stock("p1", 2) is False
    table.update.assert_not_called()


def test_decrement_stock_gives_up_under_contention(monkeypatch):
    attempts = repo.STOCK_CAS_ATTEMPTS
    client, _ = _stock_client(reads=[5] * attempts, updates=[[]] * attempts)
    monkeypatch.setattr("boutique.infra.supabase_client.get_service_supabase", lambda: client)
    assert repo.decrement_stock("p1", 1) is False


def test_decrement_stock_unknown_product(monkeypatch):
    client, _ = _stock_client(reads=[None], updates=[])
    monkeypatch.setattr("boutique.infra.supabase_client.get_service_supabase", lambda: client)
    assert repo.decrement_stock("ghost", 1) is False


def test_get_products_by_ids(monkeypatch):
    client = MagicMock()
    client.table.return_value.select.return_value.in_.return_value.execute.return_value = _Resp([
        {"id": "p1", "name": "Bague", "price": "10.00", "stock_quantity": 1, "categories": {"name": "Bagues"}},
    ])
    monkeypatch.setattr("boutique.infra.supabase_client.get_supabase", lambda: client)

    products = repo.get_products_by_ids(["p1", "p2", "p1"])
    assert list(products) == ["p1"]
    assert products["p1"].category_name == "Bagues"
    client.table.return_value.select.return_value.in_.assert_called_once_with("id", ["p1", "p2"])


def test_get_products_by_ids_failure_returns_none(monkeypatch):
    monkeypatch.setattr("boutique.infra.supabase_client.get_supabase", lambda: (_ for _ in ()).throw(Exception("boom")))
    assert repo.get_products_by_ids(["p1"]) is None
    assert repo.get_products_by_ids([]) == {}


def test_list_products_failure_returns_empty(monkeypatch):
    monkeypatch.setattr("boutique.infra.supabase_client.get_supabase", lambda: (_ for _ in ()).throw(Exception("boom")))
    assert repo.list_products() == []
