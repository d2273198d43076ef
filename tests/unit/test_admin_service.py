from decimal import Decimal
import pytest
from fastapi import HTTPException
from unittest.mock import MagicMock

from boutique.admin import service as admin_service
from boutique.admin import storage
from boutique.catalog.models import CategoryIn, ProductIn, ProductUpdate
from boutique.cart.models import CartLine
from boutique.errors import ServiceIndisponible, TransitionInvalide
from boutique.orders import service as orders_service
from boutique.orders.models import OrderStatus, ShippingInfo


@pytest.fixture
def admin_repo(monkeypatch):
    fake = MagicMock()
    fake.insert_admin_log.return_value = True
    monkeypatch.setattr(admin_service, "admin_repository", fake)
    return fake


def _logged(admin_repo):
    return [c.args[1:4] for c in admin_repo.insert_admin_log.call_args_list]


def test_create_product_logs_action(admin, admin_repo):
    admin_repo.insert_row.return_value = {"id": "p1", "name": "Bague Cartier", "price": "1500.00", "stock_quantity": 1}
    body = ProductIn(name=" Bague Cartier ", price=Decimal("1500.00"), stock_quantity=1, category_id="cat-1", era="  ")

    product = admin_service.create_product(admin, body)

    assert product.id == "p1"
    row = admin_repo.insert_row.call_args.args[1]
    assert row["name"] == "Bague Cartier"
    assert row["price"] == "1500.00"
    assert row["era"] is None
    assert _logged(admin_repo) == [("CREATE", "product", "p1")]
    assert admin_repo.insert_admin_log.call_args.args[0] == admin.id


def test_create_product_failure(admin, admin_repo):
    admin_repo.insert_row.return_value = None
    with pytest.raises(ServiceIndisponible):
        admin_service.create_product(admin, ProductIn(name="X", price=Decimal("1"), stock_quantity=0, category_id="c"))
    admin_repo.insert_admin_log.assert_not_called()


def test_update_product_partial(admin, admin_repo, store):
    store.add_product("p1", "Bague", "10.00", stock=1, is_available=False)
    admin_repo.update_row.return_value = {"id": "p1", "name": "Bague", "price": "12.00", "stock_quantity": 1}

    admin_service.update_product(admin, "p1", ProductUpdate(price=Decimal("12.00")))

    admin_repo.update_row.assert_called_once_with("products", "p1", {"price": "12.00"})
    assert _logged(admin_repo) == [("UPDATE", "product", "p1")]


def test_update_product_without_changes(admin, admin_repo):
    with pytest.raises(HTTPException) as exc:
        admin_service.update_product(admin, "p1", ProductUpdate())
    assert exc.value.status_code == 400


def test_delete_product_unknown(admin, admin_repo, store):
    with pytest.raises(HTTPException) as exc:
        admin_service.delete_product(admin, "ghost")
    assert exc.value.status_code == 404
    admin_repo.delete_row.assert_not_called()


def test_category_crud_logs(admin, admin_repo):
    admin_repo.insert_row.return_value = {"id": "c1", "name": "Bagues"}
    admin_repo.update_row.return_value = {"id": "c1", "name": "Bagues anciennes"}
    admin_repo.delete_row.return_value = True

    admin_service.create_category(admin, CategoryIn(name="Bagues"))
    admin_service.update_category(admin, "c1", CategoryIn(name="Bagues anciennes"))
    admin_service.delete_category(admin, "c1")

    assert _logged(admin_repo) == [
        ("CREATE", "category", "c1"),
        ("UPDATE", "category", "c1"),
        ("DELETE", "category", "c1"),
    ]


def test_set_user_role(admin, admin_repo):
    admin_repo.replace_user_role.return_value = True
    assert admin_service.set_user_role(admin, "u1", "livreur") == {"user_id": "u1", "role": "livreur"}
    admin_repo.replace_user_role.assert_called_once_with("u1", "livreur")
    assert _logged(admin_repo) == [("UPDATE", "user_role", "u1")]

    with pytest.raises(HTTPException):
        admin_service.set_user_role(admin, "u1", "superuser")


def test_list_users_joins_roles(admin_repo):
    admin_repo.fetch_profiles.return_value = [{"id": "u1", "email": "a@b.fr"}, {"id": "u2", "email": "c@d.fr"}]
    admin_repo.fetch_roles_by_user.return_value = {"u1": ["admin"]}
    users = admin_service.list_users()
    assert users[0]["roles"] == ["admin"]
    assert users[1]["roles"] == []


def test_list_logs_joins_admin_profiles(admin_repo):
    admin_repo.fetch_admin_logs.return_value = [
        {"id": "l1", "action": "CREATE", "admin_id": "a1"},
        {"id": "l2", "action": "DELETE", "admin_id": "a2"},
        {"id": "l3", "action": "UPDATE", "admin_id": "a1"},
    ]
    admin_repo.fetch_profiles_by_ids.return_value = {"a1": {"id": "a1", "email": "admin@x.fr", "full_name": "Admin"}}

    logs = admin_service.list_logs()

    admin_repo.fetch_profiles_by_ids.assert_called_once_with(["a1", "a2"])
    assert [l["admin_email"] for l in logs] == ["admin@x.fr", None, "admin@x.fr"]
    assert logs[0]["admin_name"] == "Admin"
    assert "profiles" not in logs[0]


def test_list_logs_empty_skips_profiles(admin_repo):
    admin_repo.fetch_admin_logs.return_value = []
    assert admin_service.list_logs() == []
    admin_repo.fetch_profiles_by_ids.assert_not_called()


def test_list_orders_joins_customer_profiles(admin_repo):
    admin_repo.fetch_admin_orders.return_value = [
        {"id": "o1", "user_id": "u1", "total_amount": "10.00"},
        {"id": "o2", "user_id": "u2", "total_amount": "20.00"},
    ]
    admin_repo.fetch_profiles_by_ids.return_value = {"u1": {"id": "u1", "email": "a@b.fr", "full_name": "Alice"}}

    orders = admin_service.list_orders(status="pending", limit=50)

    admin_repo.fetch_admin_orders.assert_called_once_with(limit=50, status="pending")
    assert (orders[0].customer_email, orders[0].customer_name) == ("a@b.fr", "Alice")
    assert orders[1].customer_email is None


def test_dashboard_stats(admin_repo):
    admin_repo.sum_paid_revenue.return_value = Decimal("2500.50")
    admin_repo.count_table_rows.side_effect = lambda table: {"orders": 3, "products": 12, "profiles": 7}[table]
    admin_repo.fetch_admin_orders.return_value = [{"id": "o1", "user_id": "u1", "total_amount": "10.00"}]
    admin_repo.fetch_profiles_by_ids.return_value = {"u1": {"id": "u1", "email": "a@b.fr", "full_name": "Alice"}}

    stats = admin_service.dashboard_stats()

    assert stats["revenue"] == "2500.50"
    assert (stats["orders_count"], stats["products_count"], stats["users_count"]) == (3, 12, 7)
    assert stats["recent_orders"][0]["id"] == "o1"
    assert stats["recent_orders"][0]["customer_email"] == "a@b.fr"


def test_update_order_status_logged_only_on_success(admin, admin_repo, store, user):
    store.add_product("p1", "Bague", "10.00", stock=2)
    order = orders_service.initiate_order(
        user, [CartLine(product_id="p1", quantity=1)],
        ShippingInfo(address="1 rue X", city="Paris", postal_code="75001"),
    )
    with pytest.raises(TransitionInvalide):
        admin_service.update_order_status(admin, order.id, OrderStatus.DELIVERED)
    admin_repo.insert_admin_log.assert_not_called()

    admin_service.update_order_status(admin, order.id, OrderStatus.CANCELLED)
    assert _logged(admin_repo) == [("UPDATE", "order", order.id)]


def test_upload_image_logs(admin, admin_repo, monkeypatch):
    monkeypatch.setattr(storage, "upload_product_image", lambda data, ct: "https://cdn.test/product-images/a.png")
    assert admin_service.upload_image(admin, b"png", "image/png") == "https://cdn.test/product-images/a.png"
    assert _logged(admin_repo) == [("CREATE", "product", None)]
