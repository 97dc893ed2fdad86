"""
Catalog service tests: brands, product types, product create/update/delete
and the low-stock report.
"""

from decimal import Decimal

import pytest

from paint_erp.models import Product, ProductType
from paint_erp.services import catalog_service
from paint_erp.validation import ConflictError, NotFoundError, ValidationError


class TestBrands:

    def test_name_is_trimmed(self, db_session):
        brand = catalog_service.create_brand(name="  Nerolac  ")
        assert brand.name == "Nerolac"

    def test_blank_name_rejected(self, db_session):
        with pytest.raises(ValidationError, match="Brand name is required"):
            catalog_service.create_brand(name="   ")

    def test_duplicate_name_rejected(self, db_session, brand):
        with pytest.raises(ConflictError, match="Brand with this name already exists"):
            catalog_service.create_brand(name=" Asian Paints ")

    def test_duplicate_check_is_case_sensitive(self, db_session, brand):
        assert catalog_service.create_brand(name="asian paints").id != brand.id

    def test_list_active_sorted(self, db_session, brand, other_brand):
        hidden = catalog_service.create_brand(name="Dulux")
        hidden.is_active = False
        db_session.commit()

        assert [b.name for b in catalog_service.list_brands()] == ["Asian Paints", "Berger"]


class TestProductTypes:

    def test_upsert_creates_then_updates_icon(self, db_session, brand):
        created_type, created = catalog_service.upsert_product_type(name="Primer", icon="a.svg", brand_id=brand.id)
        updated_type, created_again = catalog_service.upsert_product_type(name="Primer", icon="b.svg", brand_id=brand.id)

        assert created is True
        assert created_again is False
        assert updated_type.id == created_type.id
        assert updated_type.icon == "b.svg"

    def test_global_and_brand_scoped_are_distinct(self, db_session, brand):
        global_type, _ = catalog_service.upsert_product_type(name="Primer")
        scoped_type, created = catalog_service.upsert_product_type(name="Primer", brand_id=brand.id)

        assert created is True
        assert global_type.id != scoped_type.id
        assert db_session.query(ProductType).count() == 2

    def test_unknown_brand(self, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.upsert_product_type(name="Primer", brand_id=999)

    def test_list_merges_records_with_product_types(self, db_session, product, legacy_product):
        catalog_service.upsert_product_type(name="Emulsion", icon="emulsion.svg")
        catalog_service.upsert_product_type(name="Wood Finish", icon="wood.svg")

        types = catalog_service.list_product_types()

        assert [t["name"] for t in types] == ["Distemper", "Emulsion", "Wood Finish"]
        by_name = {t["name"]: t for t in types}
        assert by_name["Emulsion"]["icon"] == "emulsion.svg"
        assert by_name["Distemper"]["id"] is None

    def test_brand_list_prefers_brand_record(self, db_session, brand, other_brand, product):
        catalog_service.upsert_product_type(name="Emulsion", icon="global.svg")
        catalog_service.upsert_product_type(name="Emulsion", icon="asian.svg", brand_id=brand.id)
        catalog_service.upsert_product_type(name="Enamel", icon="berger.svg", brand_id=other_brand.id)

        types = catalog_service.list_product_types(brand_id=brand.id)

        assert [t["name"] for t in types] == ["Emulsion"]
        assert types[0]["icon"] == "asian.svg"
        assert types[0]["brand"] == brand.id

    def test_unscoped_list_prefers_global_record(self, db_session, brand, other_brand, product):
        catalog_service.upsert_product_type(name="Emulsion", icon="asian.svg", brand_id=brand.id)
        catalog_service.upsert_product_type(name="Emulsion", icon="global.svg")
        catalog_service.upsert_product_type(name="Emulsion", icon="berger.svg", brand_id=other_brand.id)

        types = catalog_service.list_product_types()

        assert [(t["name"], t["icon"], t["brand"]) for t in types] == [("Emulsion", "global.svg", None)]

    def test_other_brand_sees_global_record_only(self, db_session, brand, other_brand, product):
        catalog_service.upsert_product_type(name="Emulsion", icon="global.svg")

        types = catalog_service.list_product_types(brand_id=other_brand.id)
        assert [(t["name"], t["icon"]) for t in types] == [("Emulsion", "global.svg")]


class TestCreateProduct:

    def test_requires_stock(self, db_session, brand):
        with pytest.raises(ValidationError, match="Valid stock quantity is required"):
            catalog_service.create_product(patch={"name": "X", "brand_id": brand.id, "type": "Primer"})

    def test_unknown_brand(self, db_session):
        with pytest.raises(NotFoundError, match="Brand not found"):
            catalog_service.create_product(patch={"name": "X", "brand_id": 999, "type": "Primer", "stock": 1})

    def test_defaults(self, db_session, brand):
        p = catalog_service.create_product(patch={"name": "Primer White", "brand_id": brand.id, "type": "Primer", "stock": 0})

        assert p.price == Decimal("0")
        assert p.unit == "L"
        assert p.product_code == ""
        assert p.low_stock_threshold == 5
        assert p.is_active is True

    def test_duplicate_code_in_brand(self, db_session, product):
        with pytest.raises(ConflictError, match="Product with code AP100 already exists for this brand"):
            catalog_service.create_product(patch={
                "name": "Another name",
                "brand_id": product.brand_id,
                "type": "Emulsion",
                "product_code": "AP100",
                "stock": 1,
            })
        db_session.rollback()
        assert db_session.query(Product).count() == 1

    def test_same_code_in_other_brand_allowed(self, db_session, product, other_brand):
        p = catalog_service.create_product(patch={
            "name": "Silk",
            "brand_id": other_brand.id,
            "type": "Emulsion",
            "product_code": "AP100",
            "stock": 1,
        })
        assert p.id != product.id

    def test_duplicate_name_without_code(self, db_session, legacy_product):
        with pytest.raises(ConflictError, match="Product with this name already exists for this brand"):
            catalog_service.create_product(patch={
                "name": "Tractor Distemper",
                "brand_id": legacy_product.brand_id,
                "type": "Distemper",
                "stock": 1,
            })

    def test_same_name_with_distinct_codes_allowed(self, db_session, product):
        p = catalog_service.create_product(patch={
            "name": "Royale Luxury Emulsion",
            "brand_id": product.brand_id,
            "type": "Emulsion",
            "product_code": "AP101",
            "stock": 0,
        })
        assert p.product_code == "AP101"


class TestUpdateProduct:

    def test_partial_update(self, db_session, product):
        updated = catalog_service.update_product(product_id=product.id, patch={
            "description": "Washable",
            "low_stock_threshold": 2,
            "price_by_size": {"10L": Decimal("4200")},
        })

        assert updated.description == "Washable"
        assert updated.low_stock_threshold == 2
        assert updated.price_by_size["10L"] == 4200.0
        assert updated.price_by_size["1L"] == 500.0
        assert updated.name == "Royale Luxury Emulsion"

    def test_stock_by_size_recomputes_total(self, db_session, product):
        updated = catalog_service.update_product(product_id=product.id, patch={"stock_by_size": {"10L": 2}})
        assert updated.stock == 17

    def test_code_change_rechecks_uniqueness(self, db_session, product, brand):
        catalog_service.create_product(patch={
            "name": "Apcolite", "brand_id": brand.id, "type": "Enamel", "product_code": "AP200", "stock": 0,
        })

        with pytest.raises(ConflictError):
            catalog_service.update_product(product_id=product.id, patch={"product_code": "AP200"})

    def test_missing_product(self, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.update_product(product_id=999, patch={"name": "X"})

    def test_image_propagates_to_colour_variants(self, db_session, brand, other_brand):
        def make(code, brand_id=brand.id):
            return catalog_service.create_product(patch={
                "name": f"Shade {code}", "brand_id": brand_id, "type": "Emulsion", "product_code": code, "stock": 0,
            })

        base = make("SH10")
        red = make("SH10-RED")
        blue = make("SH10-BLUE")
        unrelated = make("SH100")
        elsewhere = make("SH10-RED", brand_id=other_brand.id)

        catalog_service.update_product(product_id=red.id, patch={"product_image": "sh10.png"})
        db_session.expire_all()

        images = {p.id: db_session.get(Product, p.id).product_image for p in (base, red, blue, unrelated, elsewhere)}
        assert images == {
            base.id: "sh10.png",
            red.id: "sh10.png",
            blue.id: "sh10.png",
            unrelated.id: "",
            elsewhere.id: "",
        }


class TestDeleteAndListProducts:

    def test_soft_delete_hides_product(self, db_session, product, legacy_product):
        catalog_service.delete_product(product_id=product.id)

        assert db_session.get(Product, product.id).is_active is False
        assert [p.id for p in catalog_service.list_products()] == [legacy_product.id]
        with pytest.raises(NotFoundError):
            catalog_service.get_product(product.id)

    def test_search_is_case_insensitive(self, db_session, product, legacy_product):
        assert [p.id for p in catalog_service.list_products(search="royale")] == [product.id]

    def test_search_treats_wildcards_literally(self, db_session, product):
        assert catalog_service.list_products(search="%") == []

    def test_filter_by_brand_and_type(self, db_session, product, legacy_product, other_brand):
        assert len(catalog_service.list_products(brand_id=product.brand_id)) == 2
        assert catalog_service.list_products(brand_id=other_brand.id) == []
        assert [p.id for p in catalog_service.list_products(brand_id=product.brand_id, type_name="Distemper")] == [
            legacy_product.id
        ]


class TestLowStock:

    def test_threshold_is_inclusive(self, db_session, brand):
        at = catalog_service.create_product(patch={"name": "At", "brand_id": brand.id, "type": "Primer", "stock": 5})
        below = catalog_service.create_product(patch={"name": "Below", "brand_id": brand.id, "type": "Primer", "stock": 1})
        catalog_service.create_product(patch={"name": "Above", "brand_id": brand.id, "type": "Primer", "stock": 6})

        assert [p.id for p in catalog_service.list_low_stock_products()] == [below.id, at.id]

    def test_custom_threshold(self, db_session, product):
        catalog_service.update_product(product_id=product.id, patch={"low_stock_threshold": 15})
        assert [p.id for p in catalog_service.list_low_stock_products(brand_id=product.brand_id)] == [product.id]
