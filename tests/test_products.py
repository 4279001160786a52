"""Tests for catalog browsing, product editing, variants and reports."""

import io
import uuid
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import UploadFile
from starlette.datastructures import Headers

from products import (
    ProductManager,
    ProductNotFoundError,
    VariantNotFoundError,
    InvalidProductError,
    ProductError,
    PermissionDeniedError,
    DuplicateReportError,
    paginate,
    parse_price,
    parse_list,
    normalize_fields,
)
from tests.fakes import make_product, make_profile


def make_upload(name: str, data: bytes, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=name,
        headers=Headers({'content-type': content_type})
    )


@pytest_asyncio.fixture
async def manager(products, reports):
    return ProductManager(products=products, reports=reports)


@pytest.mark.parametrize('page, limit, expected', [
    (1, 20, {'page': 1, 'limit': 20, 'offset': 0}),
    (3, 10, {'page': 3, 'limit': 10, 'offset': 20}),
    (0, 500, {'page': 1, 'limit': 100, 'offset': 0}),
    (None, None, {'page': 1, 'limit': 20, 'offset': 0}),
])
def test_paginate(page, limit, expected):
    assert paginate(page, limit) == expected

def test_parse_price():
    assert parse_price('19.99') == Decimal('19.99')
    assert parse_price(0) == Decimal('0')
    for bad in ('-1', 'abc', '1.999', 'NaN'):
        with pytest.raises(InvalidProductError):
            parse_price(bad)

def test_parse_list_accepts_json_and_commas():
    assert parse_list('["Code", "Design"]', 'tags') == ['Code', 'Design']
    assert parse_list('react, ui ,', 'tags') == ['react', 'ui']
    assert parse_list(None, 'tags') == []
    with pytest.raises(InvalidProductError):
        parse_list('{"a": 1}', 'tags')

def test_normalize_fields():
    fields = normalize_fields({'name': ' Kit ', 'price': '10', 'category': 'Code'}, creating=True)
    assert fields == {'name': 'Kit', 'price': Decimal('10'), 'categories': ['Code'], 'currency': 'INR'}

    with pytest.raises(InvalidProductError):
        normalize_fields({'price': '10'}, creating=True)
    with pytest.raises(InvalidProductError):
        normalize_fields({'name': 'Kit'}, creating=True)
    with pytest.raises(InvalidProductError):
        normalize_fields({'creator_id': 'someone-else'}, creating=False)
    with pytest.raises(InvalidProductError):
        normalize_fields({'currency': 'RUPEES'}, creating=False)


# Browsing

@pytest.mark.asyncio
async def test_list_products_hides_inactive(manager, products, creator):
    products.add(make_product(creator['id'], name='Visible'))
    products.add(make_product(creator['id'], name='Hidden', is_active=False))

    result = await manager.list_products()
    assert [p['name'] for p in result['products']] == ['Visible']
    assert result['total'] == 1
    assert await manager.total_products() == 1

@pytest.mark.asyncio
async def test_list_products_newest_first(manager, products, creator):
    for name in ('first', 'second', 'third'):
        products.add(make_product(creator['id'], name=name))
    result = await manager.list_products(page=1, limit=2)
    assert [p['name'] for p in result['products']] == ['third', 'second']
    assert result['total'] == 3

@pytest.mark.asyncio
async def test_search_products(manager, products, creator):
    products.add(make_product(creator['id'], name='React Dashboard', price='499.00'))
    products.add(make_product(creator['id'], name='React Icons', price='99.00'))
    products.add(make_product(creator['id'], name='Vue Starter', price='199.00'))

    result = await manager.search_products(q='react', sort='price_asc')
    assert [p['name'] for p in result['products']] == ['React Icons', 'React Dashboard']

    result = await manager.search_products(min_price='100', max_price='300')
    assert [p['name'] for p in result['products']] == ['Vue Starter']

    with pytest.raises(InvalidProductError):
        await manager.search_products(sort='popular')
    with pytest.raises(InvalidProductError):
        await manager.search_products(min_price='10', max_price='5')

@pytest.mark.asyncio
async def test_inactive_product_visible_to_owner_only(manager, products, creator, customer, admin):
    hidden = products.add(make_product(creator['id'], is_active=False))

    with pytest.raises(ProductNotFoundError):
        await manager.get_product(hidden['id'])
    with pytest.raises(ProductNotFoundError):
        await manager.get_product(hidden['id'], customer)
    assert (await manager.get_product(hidden['id'], creator))['id'] == hidden['id']
    assert (await manager.get_product(hidden['id'], admin))['id'] == hidden['id']

@pytest.mark.asyncio
async def test_get_product_includes_variants(manager, products, product):
    products.add_variant(product['id'], 'Extended', '999.00')
    products.add_variant(product['id'], 'Personal', '299.00')
    result = await manager.get_product(product['id'])
    assert [v['name'] for v in result['variants']] == ['Personal', 'Extended']


# Editing

@pytest.mark.asyncio
async def test_create_product_with_uploads(manager, creator, upload_dir):
    product = await manager.create_product(
        creator,
        {'name': 'UI Kit', 'price': '299.00', 'categories': '["Design"]'},
        files=[make_upload('kit.zip', b'PK\x03\x04', 'application/zip')],
        thumbnail=make_upload('cover.png', b'\x89PNG', 'image/png')
    )

    assert product['creator_id'] == creator['id']
    assert product['price'] == Decimal('299.00')
    assert product['categories'] == ['Design']
    assert Path(product['thumbnail_url']).read_bytes() == b'\x89PNG'
    assert len(product['files']) == 1
    assert product['files'][0]['file_size'] == 4
    assert Path(product['files'][0]['file_path']).is_relative_to(upload_dir)

@pytest.mark.asyncio
async def test_create_product_rejects_non_image_thumbnail(manager, creator, products, upload_dir):
    with pytest.raises(InvalidProductError):
        await manager.create_product(
            creator,
            {'name': 'UI Kit', 'price': '299.00'},
            thumbnail=make_upload('cover.exe', b'MZ', 'application/octet-stream')
        )
    assert products.rows == {}

def stored_files(root):
    return [p for p in root.rglob('*') if p.is_file()]

@pytest.mark.asyncio
async def test_create_product_oversized_file_leaves_nothing_behind(manager, creator, products, upload_dir, monkeypatch):
    from config import settings_conf
    monkeypatch.setitem(settings_conf, 'max_upload_mb', 1)

    with pytest.raises(InvalidProductError):
        await manager.create_product(
            creator,
            {'name': 'UI Kit', 'price': '299.00'},
            files=[make_upload('kit.zip', b'x' * (1024 * 1024 + 10), 'application/zip')],
            thumbnail=make_upload('cover.png', b'\x89PNG', 'image/png'),
            preview_images=[make_upload('shot.png', b'\x89PNG', 'image/png')]
        )
    assert products.rows == {}
    assert products.files == []
    assert stored_files(upload_dir) == []

@pytest.mark.asyncio
async def test_create_product_database_failure_removes_uploads(manager, creator, products, upload_dir):
    products.fail_on_create = RuntimeError('connection lost')

    with pytest.raises(ProductError):
        await manager.create_product(
            creator,
            {'name': 'UI Kit', 'price': '299.00'},
            files=[make_upload('kit.zip', b'PK\x03\x04', 'application/zip')],
            thumbnail=make_upload('cover.png', b'\x89PNG', 'image/png')
        )
    assert products.rows == {}
    assert stored_files(upload_dir) == []

@pytest.mark.asyncio
async def test_create_product_requires_creator(manager, customer, profiles):
    with pytest.raises(PermissionDeniedError):
        await manager.create_product(customer, {'name': 'Kit', 'price': '1'})

    restricted = profiles.add(make_profile('r@example.com', roles=['creator'], is_restricted=True))
    with pytest.raises(PermissionDeniedError):
        await manager.create_product(restricted, {'name': 'Kit', 'price': '1'})

@pytest.mark.asyncio
async def test_update_product_owner_only(manager, product, creator, customer, admin):
    updated = await manager.update_product(product['id'], creator, {'price': '399.00'})
    assert updated['price'] == Decimal('399.00')

    with pytest.raises(PermissionDeniedError):
        await manager.update_product(product['id'], customer, {'price': '1.00'})

    updated = await manager.update_product(product['id'], admin, {'is_featured': None, 'name': 'Renamed'})
    assert updated['name'] == 'Renamed'

@pytest.mark.asyncio
async def test_delete_product_is_soft(manager, products, product, creator):
    await manager.delete_product(product['id'], creator)
    assert (await products.get(product['id']))['is_active'] is False
    assert (await manager.list_products())['total'] == 0

@pytest.mark.asyncio
async def test_missing_product(manager, creator):
    with pytest.raises(ProductNotFoundError):
        await manager.update_product(uuid.uuid4(), creator, {'price': '1'})
    with pytest.raises(ProductNotFoundError):
        await manager.get_product_files(uuid.uuid4())


# Variants

@pytest.mark.asyncio
async def test_variant_lifecycle(manager, product, creator, customer):
    variant = await manager.create_variant(product['id'], creator, 'Team license', '1499.00', 'Up to 10 seats')
    assert variant['price'] == Decimal('1499.00')
    assert [v['id'] for v in await manager.list_variants(product['id'])] == [variant['id']]

    with pytest.raises(PermissionDeniedError):
        await manager.update_variant(variant['id'], customer, {'price': '1'})

    updated = await manager.update_variant(variant['id'], creator, {'price': '1299.00'})
    assert updated['price'] == Decimal('1299.00')

    await manager.delete_variant(variant['id'], creator)
    with pytest.raises(VariantNotFoundError):
        await manager.get_variant(variant['id'])

@pytest.mark.asyncio
async def test_variant_validation(manager, product, creator):
    with pytest.raises(InvalidProductError):
        await manager.create_variant(product['id'], creator, '  ', '10')
    with pytest.raises(InvalidProductError):
        await manager.create_variant(product['id'], creator, 'Bad', '-10')


# Reports

@pytest.mark.asyncio
async def test_report_product(manager, product, customer, reports):
    report = await manager.report_product(product['id'], customer, 'Copyright', 'Copied from elsewhere')
    assert report['status'] == 'pending'
    assert report['reporter_id'] == customer['id']

    with pytest.raises(DuplicateReportError):
        await manager.report_product(product['id'], customer, 'Spam')

    await reports.update(report['id'], {'status': 'dismissed'})
    again = await manager.report_product(product['id'], customer, 'Spam')
    assert again['id'] != report['id']

@pytest.mark.asyncio
async def test_report_validation(manager, product, customer):
    with pytest.raises(InvalidProductError):
        await manager.report_product(product['id'], customer, '')
    with pytest.raises(ProductNotFoundError):
        await manager.report_product(uuid.uuid4(), customer, 'Spam')
