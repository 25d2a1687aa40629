import asyncio

import pytest

from lostphones import container
from lostphones.domain.accounts.models import AccountType, Role
from lostphones.domain.errors import AlreadyApproved, Conflict, Forbidden, NotFound, PendingApproval
from lostphones.domain.shops.models import ShopStatus


@pytest.mark.asyncio
async def test_register_creates_pending_shop_and_shop_account(shop_form):
    user, shop = await container.get_shop_service().register(shop_form(email="Owner@ACME.lk"))
    assert shop.status is ShopStatus.PENDING
    assert shop.is_approved is False
    assert user.role is Role.SHOP
    assert user.account_type is AccountType.SHOP
    assert user.email == "owner@acme.lk"
    assert await container.get_user_repository().get(user.id) is not None


@pytest.mark.asyncio
async def test_register_refuses_duplicate_names(shop_form):
    service = container.get_shop_service()
    await service.register(shop_form())
    with pytest.raises(Conflict) as excinfo:
        await service.register(shop_form(username="acme2", email="other@acme.lk", shop_name="acme mobile"))
    assert excinfo.value.detail == "shop_name_taken"
    with pytest.raises(Conflict) as excinfo:
        await service.register(shop_form(shop_name="Other Shop"))
    assert excinfo.value.detail == "username_taken"


@pytest.mark.asyncio
async def test_approve_records_decision(admin, shop_form):
    service = container.get_shop_service()
    _, shop = await service.register(shop_form())
    approved = await service.approve(admin, shop.id)
    assert approved.status is ShopStatus.APPROVED
    assert approved.approved_by == admin.id
    assert approved.approved_at is not None


@pytest.mark.asyncio
async def test_second_approval_is_already_approved(admin, shop_form):
    service = container.get_shop_service()
    _, shop = await service.register(shop_form())
    await service.approve(admin, shop.id)
    with pytest.raises(AlreadyApproved):
        await service.approve(admin, shop.id)


@pytest.mark.asyncio
async def test_concurrent_approvals_converge(admin, shop_form):
    service = container.get_shop_service()
    _, shop = await service.register(shop_form())
    results = await asyncio.gather(
        service.approve(admin, shop.id), service.approve(admin, shop.id), return_exceptions=True
    )
    approved = [result for result in results if not isinstance(result, Exception)]
    refused = [result for result in results if isinstance(result, Exception)]
    assert len(approved) == 1
    assert len(refused) == 1 and isinstance(refused[0], AlreadyApproved)
    stored = await container.get_shop_repository().get(shop.id)
    assert stored.status is ShopStatus.APPROVED


@pytest.mark.asyncio
async def test_reject_keeps_record_and_demotes_owner(admin, shop_form):
    service = container.get_shop_service()
    user, shop = await service.register(shop_form())
    rejected = await service.reject(admin, shop.id, reason="incomplete address")
    assert rejected.status is ShopStatus.REJECTED
    assert rejected.decision_reason == "incomplete address"
    owner = await container.get_user_repository().get(user.id)
    assert owner.role is Role.USER
    assert owner.account_type is AccountType.SHOP

    pending = await service.list_shops(admin, status="pending")
    approved = await service.list_shops(admin, status="approved")
    assert pending.total == 0 and approved.total == 0
    everything = await service.list_shops(admin)
    assert [item.id for item in everything.items] == [shop.id]


@pytest.mark.asyncio
async def test_rejected_shop_cannot_be_approved(admin, shop_form):
    service = container.get_shop_service()
    _, shop = await service.register(shop_form())
    await service.reject(admin, shop.id)
    with pytest.raises(Conflict) as excinfo:
        await service.approve(admin, shop.id)
    assert excinfo.value.detail == "shop_is_rejected"


@pytest.mark.asyncio
async def test_revoke_only_applies_to_approved_shops(admin, shop_form):
    service = container.get_shop_service()
    _, shop = await service.register(shop_form())
    with pytest.raises(Conflict):
        await service.revoke(admin, shop.id)
    await service.approve(admin, shop.id)
    revoked = await service.revoke(admin, shop.id, reason="fraud reports")
    assert revoked.status is ShopStatus.REVOKED


@pytest.mark.asyncio
async def test_login_gate_by_status(admin, shop_form):
    service = container.get_shop_service()
    users = container.get_user_repository()
    user, shop = await service.register(shop_form())
    with pytest.raises(PendingApproval):
        await service.check_login(user)
    await service.approve(admin, shop.id)
    assert (await service.check_login(user)).id == shop.id
    await service.revoke(admin, shop.id)
    with pytest.raises(Forbidden):
        await service.check_login(await users.get(user.id))


@pytest.mark.asyncio
async def test_moderation_requires_admin_before_existence(member, as_principal):
    service = container.get_shop_service()
    with pytest.raises(Forbidden):
        await service.approve(as_principal(member), "missing")


@pytest.mark.asyncio
async def test_unknown_shop_is_not_found(admin):
    with pytest.raises(NotFound):
        await container.get_shop_service().approve(admin, "missing")


@pytest.mark.asyncio
async def test_delete_removes_listings_and_demotes_owner(admin, approved_shop, as_principal, listing_data, storage):
    from lostphones.infra.storage import ImageUpload

    owner, shop = approved_shop
    listings = container.get_listing_service()
    created = await listings.create(
        as_principal(owner), listing_data(), [ImageUpload(content_type="image/png", data=b"png")]
    )
    assert created.shop_id == shop.id
    assert len(storage.objects) == 1

    await container.get_shop_service().delete(admin, shop.id)
    assert await container.get_shop_repository().get(shop.id) is None
    assert await container.get_listing_repository().get(created.id) is None
    assert storage.objects == {}
    assert (await container.get_user_repository().get(owner.id)).role is Role.USER


@pytest.mark.asyncio
async def test_owner_updates_own_shop_profile(approved_shop, as_principal, shop_form):
    from lostphones.domain.shops.schemas import ShopProfileUpdateRequest

    owner, shop = approved_shop
    service = container.get_shop_service()
    updated = await service.update_my_shop(
        as_principal(owner), ShopProfileUpdateRequest(location="Maharagama", description="Repairs too")
    )
    assert updated.location == "Maharagama"
    assert updated.description == "Repairs too"
    assert updated.status is ShopStatus.APPROVED


@pytest.mark.asyncio
async def test_regular_users_have_no_shop_profile(member, as_principal):
    with pytest.raises(Forbidden):
        await container.get_shop_service().get_my_shop(as_principal(member))
