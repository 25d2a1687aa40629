"""Service container wiring repositories, storage and services.

Defaults to in-memory repositories; ``configure_postgres`` swaps in the
PostgreSQL implementations once the application has a pool.
"""

from __future__ import annotations

from typing import Optional

import asyncpg

from lostphones.domain.accounts.repository import InMemoryUserRepository, UserRepository
from lostphones.domain.accounts.service import AccountService
from lostphones.domain.admin import AdminService
from lostphones.domain.banners.repository import BannerRepository, InMemoryBannerRepository
from lostphones.domain.banners.service import BannerService
from lostphones.domain.listings.repository import InMemoryListingRepository, ListingRepository
from lostphones.domain.listings.service import ListingService
from lostphones.domain.metadata.repository import InMemoryMetadataRepository, MetadataRepository
from lostphones.domain.metadata.service import MetadataService
from lostphones.domain.shops.repository import InMemoryShopRepository, ShopRepository
from lostphones.domain.shops.service import ShopModerationService
from lostphones.infra.banner_repo import PostgresBannerRepository
from lostphones.infra.listing_repo import PostgresListingRepository
from lostphones.infra.metadata_repo import PostgresMetadataRepository
from lostphones.infra.shop_repo import PostgresShopRepository
from lostphones.infra.storage import InMemoryObjectStorage, LocalObjectStorage, ObjectStorage
from lostphones.infra.user_repo import PostgresUserRepository

_users: UserRepository
_shops: ShopRepository
_listings: ListingRepository
_metadata: MetadataRepository
_banners: BannerRepository
_storage: ObjectStorage
_metadata_service: MetadataService
_listing_service: ListingService
_shop_service: ShopModerationService
_account_service: AccountService
_admin_service: AdminService
_banner_service: BannerService


def configure(
    *,
    users: UserRepository,
    shops: ShopRepository,
    listings: ListingRepository,
    metadata: MetadataRepository,
    banners: BannerRepository,
    storage: ObjectStorage,
) -> None:
    global _users, _shops, _listings, _metadata, _banners, _storage
    global _metadata_service, _listing_service, _shop_service, _account_service, _admin_service, _banner_service
    _users = users
    _shops = shops
    _listings = listings
    _metadata = metadata
    _banners = banners
    _storage = storage
    _metadata_service = MetadataService(metadata)
    _listing_service = ListingService(listings, shops, storage)
    _shop_service = ShopModerationService(shops, users, listings, storage)
    _account_service = AccountService(users, shops, _shop_service, listings, storage)
    _admin_service = AdminService(users, shops, listings, _account_service)
    _banner_service = BannerService(banners, storage)


def configure_memory(*, storage: Optional[ObjectStorage] = None) -> None:
    users = InMemoryUserRepository()
    configure(
        users=users,
        shops=InMemoryShopRepository(users),
        listings=InMemoryListingRepository(),
        metadata=InMemoryMetadataRepository(),
        banners=InMemoryBannerRepository(),
        storage=storage or InMemoryObjectStorage(),
    )


def configure_postgres(pool: asyncpg.Pool, *, storage: Optional[ObjectStorage] = None) -> None:
    configure(
        users=PostgresUserRepository(pool),
        shops=PostgresShopRepository(pool),
        listings=PostgresListingRepository(pool),
        metadata=PostgresMetadataRepository(pool),
        banners=PostgresBannerRepository(pool),
        storage=storage or LocalObjectStorage(),
    )


def get_user_repository() -> UserRepository:
    return _users


def get_shop_repository() -> ShopRepository:
    return _shops


def get_listing_repository() -> ListingRepository:
    return _listings


def get_metadata_repository() -> MetadataRepository:
    return _metadata


def get_banner_repository() -> BannerRepository:
    return _banners


def get_storage() -> ObjectStorage:
    return _storage


def get_metadata_service() -> MetadataService:
    return _metadata_service


def get_listing_service() -> ListingService:
    return _listing_service


def get_shop_service() -> ShopModerationService:
    return _shop_service


def get_account_service() -> AccountService:
    return _account_service


def get_admin_service() -> AdminService:
    return _admin_service


def get_banner_service() -> BannerService:
    return _banner_service


configure_memory()
