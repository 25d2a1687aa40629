import pytest

from lostphones import container
from lostphones.domain.accounts.models import AccountType, Role
from lostphones.domain.accounts.schemas import LoginRequest, PasswordChangeRequest, ProfileUpdateRequest, RegisterRequest
from lostphones.domain.errors import Conflict, Forbidden, NotFound, PendingApproval, Unauthenticated, ValidationError
from lostphones.infra import jwt as jwt_helper

PASSWORD = "secret123"


def login(identifier: str, password: str = PASSWORD) -> LoginRequest:
    return LoginRequest(identifier=identifier, password=password)


@pytest.mark.asyncio
async def test_register_issues_token_for_a_regular_user():
    session = await container.get_account_service().register(
        RegisterRequest(username="kasun", email="Kasun@Mail.lk", password=PASSWORD, phone_number="0771234567")
    )
    assert session.user.role is Role.USER
    assert session.user.account_type is AccountType.USER
    assert session.user.email == "kasun@mail.lk"
    claims = jwt_helper.decode_access(session.token)
    assert claims["sub"] == session.user.id
    assert claims["role"] == "user"


@pytest.mark.asyncio
async def test_register_conflicts(member):
    service = container.get_account_service()
    with pytest.raises(Conflict) as excinfo:
        await service.register(RegisterRequest(username="KASUN", password=PASSWORD, phone_number="0771234567"))
    assert excinfo.value.detail == "username_taken"


@pytest.mark.asyncio
async def test_login_by_username_email_or_phone(make_account):
    user = await make_account("nimal", email="nimal@mail.lk", phone_number="0711111111")
    service = container.get_account_service()
    for identifier in ("nimal", "NIMAL@mail.lk", "0711111111"):
        session = await service.login(login(identifier))
        assert session.user.id == user.id
        assert session.user.last_login is not None


@pytest.mark.asyncio
async def test_bad_credentials_are_indistinguishable(member):
    service = container.get_account_service()
    with pytest.raises(Unauthenticated) as wrong_password:
        await service.login(login("kasun", "not-the-password"))
    with pytest.raises(Unauthenticated) as unknown_user:
        await service.login(login("nobody"))
    assert wrong_password.value.detail == unknown_user.value.detail == "invalid_credentials"


@pytest.mark.asyncio
async def test_banned_users_cannot_log_in_or_use_tokens(make_account):
    user = await make_account("banned", is_banned=True)
    service = container.get_account_service()
    with pytest.raises(Forbidden):
        await service.login(login("banned"))
    with pytest.raises(Forbidden):
        await service.resolve_principal(user.id)


@pytest.mark.asyncio
async def test_shop_login_follows_moderation(admin, shop_form):
    accounts = container.get_account_service()
    shops = container.get_shop_service()
    _, shop = await shops.register(shop_form())
    with pytest.raises(PendingApproval):
        await accounts.login(login("acme"))

    await shops.approve(admin, shop.id)
    session = await accounts.login(login("acme"))
    assert session.user.role is Role.SHOP
    assert session.shop.id == shop.id


@pytest.mark.asyncio
async def test_rejected_shop_owner_logs_in_as_user(admin, shop_form):
    accounts = container.get_account_service()
    shops = container.get_shop_service()
    _, shop = await shops.register(shop_form())
    await shops.reject(admin, shop.id)
    session = await accounts.login(login("acme"))
    assert session.user.role is Role.USER
    assert session.shop is None


@pytest.mark.asyncio
async def test_principal_role_comes_from_storage(member):
    service = container.get_account_service()
    await container.get_user_repository().update(member.id, {"role": Role.ADMIN})
    principal = await service.resolve_principal(member.id)
    assert principal.is_admin
    with pytest.raises(Unauthenticated):
        await service.resolve_principal("missing")


@pytest.mark.asyncio
async def test_profile_update_and_password_change(member, make_account, as_principal):
    service = container.get_account_service()
    principal = as_principal(member)
    await make_account("taken", email="taken@mail.lk")
    with pytest.raises(Conflict):
        await service.update_profile(principal, ProfileUpdateRequest(email="TAKEN@mail.lk"))
    updated = await service.update_profile(principal, ProfileUpdateRequest(phone_number="+94 77 765 4321"))
    assert updated.phone_number == "+94 77 765 4321"

    with pytest.raises(ValidationError) as excinfo:
        await service.change_password(
            principal, PasswordChangeRequest(current_password="wrong", new_password="newsecret")
        )
    assert excinfo.value.fields == ["current_password"]
    await service.change_password(principal, PasswordChangeRequest(current_password=PASSWORD, new_password="newsecret"))
    assert (await service.login(login("kasun", "newsecret"))).user.id == member.id


@pytest.mark.asyncio
async def test_admin_user_management_rules(admin, admin_user, member, make_account):
    service = container.get_account_service()
    other_admin = await make_account("root", role=Role.ADMIN)
    with pytest.raises(Forbidden):
        await service.toggle_ban(admin, admin_user.id)
    with pytest.raises(Forbidden):
        await service.toggle_ban(admin, other_admin.id)
    with pytest.raises(NotFound):
        await service.toggle_ban(admin, "missing")

    banned = await service.toggle_ban(admin, member.id)
    assert banned.is_banned is True
    assert (await service.toggle_ban(admin, member.id)).is_banned is False

    with pytest.raises(ValidationError):
        await service.set_role(admin, member.id, Role.SHOP)
    promoted = await service.set_role(admin, member.id, Role.ADMIN)
    assert promoted.role is Role.ADMIN


@pytest.mark.asyncio
async def test_list_users_filters(admin, member, make_account):
    service = container.get_account_service()
    await make_account("banned", is_banned=True)
    page = await service.list_users(admin, is_banned=True)
    assert [user.username for user in page.items] == ["banned"]
    page = await service.list_users(admin, role=Role.ADMIN)
    assert page.total == 1
    page = await service.list_users(admin, search="kas")
    assert [user.id for user in page.items] == [member.id]


@pytest.mark.asyncio
async def test_delete_user_removes_their_listings(admin, member, as_principal, listing_data):
    listing = await container.get_listing_service().create(as_principal(member), listing_data())
    await container.get_account_service().delete_user(admin, member.id)
    assert await container.get_user_repository().get(member.id) is None
    assert await container.get_listing_repository().get(listing.id) is None


@pytest.mark.asyncio
async def test_delete_shop_owner_removes_shop(admin, approved_shop):
    owner, shop = approved_shop
    await container.get_account_service().delete_user(admin, owner.id)
    assert await container.get_shop_repository().get(shop.id) is None
