import pytest

from lostphones.domain import access
from lostphones.domain.accounts.models import Role, User
from lostphones.domain.errors import Forbidden, Unauthenticated
from lostphones.domain.shops.models import Shop, ShopStatus

ADMIN = access.Principal(id="admin-1", role=Role.ADMIN)
MEMBER = access.Principal(id="user-1", role=Role.USER)
SHOP_OWNER = access.Principal(id="shop-user-1", role=Role.SHOP)


def make_shop(status: ShopStatus) -> Shop:
    return Shop(
        id="shop-1",
        user_id=SHOP_OWNER.id,
        shop_name="ACME Mobile",
        owner_name="Nimal",
        contact_number="+94771234567",
        address="12 High Level Road",
        location="Nugegoda",
        status=status,
    )


def test_anonymous_callers_are_unauthenticated():
    with pytest.raises(Unauthenticated):
        access.require_authenticated(None)
    with pytest.raises(Unauthenticated):
        access.require_admin(None)


@pytest.mark.parametrize("principal", [MEMBER, SHOP_OWNER])
def test_admin_gate_rejects_other_roles(principal):
    with pytest.raises(Forbidden) as excinfo:
        access.require_admin(principal)
    assert excinfo.value.detail == "forbidden"
    assert excinfo.value.reason == "admin_required"


def test_admin_gate_passes_admins():
    assert access.require_admin(ADMIN) is ADMIN


def test_regular_users_may_always_post():
    access.ensure_can_post(MEMBER, None)


@pytest.mark.parametrize("status", [ShopStatus.PENDING, ShopStatus.REJECTED, ShopStatus.REVOKED])
def test_shop_accounts_need_an_approved_shop(status):
    with pytest.raises(Forbidden):
        access.ensure_can_post(SHOP_OWNER, make_shop(status))


def test_shop_without_a_record_cannot_post():
    with pytest.raises(Forbidden):
        access.ensure_can_post(SHOP_OWNER, None)


def test_approved_shop_may_post():
    access.ensure_can_post(SHOP_OWNER, make_shop(ShopStatus.APPROVED))


def test_owner_or_admin():
    access.ensure_owner_or_admin(MEMBER, MEMBER.id)
    access.ensure_owner_or_admin(ADMIN, MEMBER.id)
    with pytest.raises(Forbidden):
        access.ensure_owner_or_admin(MEMBER, "someone-else")
    with pytest.raises(Forbidden):
        access.ensure_owner_or_admin(MEMBER, None)


def test_admins_cannot_manage_themselves_or_other_admins():
    other_admin = User(id="admin-2", username="root", password_hash="x", role=Role.ADMIN)
    me = User(id=ADMIN.id, username="admin", password_hash="x", role=Role.ADMIN)
    member = User(id=MEMBER.id, username="kasun", password_hash="x")
    with pytest.raises(Forbidden):
        access.ensure_can_manage_user(ADMIN, me)
    with pytest.raises(Forbidden):
        access.ensure_can_manage_user(ADMIN, other_admin)
    access.ensure_can_manage_user(ADMIN, member)
