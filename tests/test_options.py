"""Tests for option loading, matrix rebuild and admin editing rules."""
import json

from app.pricing.options import (
    DensityOption,
    LengthOption,
    PriceMatrixRow,
    load_product,
    prepare_for_save,
    rebuild_price_matrix,
    remove_density,
    remove_length,
    rename_density,
    rename_length,
    to_amount,
    to_bool,
)
from conftest import wig_record


def test_load_backfills_ids_and_strips_suffix():
    product = load_product({
        "id": 3,
        "price": 1000,
        "length_options": [{"value": "16 inches", "price": 40000}],
    })
    option = product.length_options[0]
    assert option.value == "16"
    assert option.id == "length-16"
    # Base length mirrors onto the product price.
    assert product.price == 40000


def test_load_accepts_legacy_shapes():
    product = load_product({
        "id": "12",
        "price": "25,000",
        "in_stock": 1,
        "lengthOptions": json.dumps([
            {"value": "14inches", "price": "25,000", "originalPrice": 30000, "laceSize": "13x4"},
        ]),
        "laceSizeOptions": [
            {"value": "13x4", "priceMultiplier": "5,000"},
            {"value": "  ", "priceMultiplier": 100},
        ],
        "densityOptions": ["180%", {"value": "200%", "additionalPrice": 7000,
                                    "prices": [{"lengthId": "length-14", "price": 33000}]}],
    })
    assert product.id == 12
    assert product.in_stock is True
    assert product.length_options[0].lace_size == "13x4"
    assert product.original_price == 30000
    assert [o.value for o in product.lace_size_options] == ["13x4"]
    assert product.lace_size_options[0].price_multiplier == 5000
    legacy = product.density_options[0]
    assert (legacy.value, legacy.label, legacy.prices, legacy.additional_price) == (
        "180%", "180%", [], 0
    )
    assert product.density_options[1].prices[0] == PriceMatrixRow("length-14", "", 33000)


def test_load_tolerates_malformed_columns():
    product = load_product({"id": 1, "price": 500, "length_options": "{not json",
                            "density_options": None, "lace_size_options": ""})
    assert product.length_options == []
    assert product.density_options == []
    assert product.price == 500


def test_rebuild_adds_one_row_and_preserves_prices(wig):
    density = wig.density_options[1]
    before = {row.length_id: row.price for row in density.prices}
    lengths = wig.length_options + [LengthOption(value="22", price=40000)]

    rows = rebuild_price_matrix(density, lengths)

    assert [r.length_id for r in rows] == ["length-14", "length-18", "length-22"]
    assert {r.length_id: r.price for r in rows[:2]} == before
    assert rows[2].price == 40000


def test_rebuild_drops_rows_for_removed_lengths(wig):
    density = wig.density_options[1]
    rows = rebuild_price_matrix(density, wig.length_options[1:])
    assert rows == [PriceMatrixRow("length-18", "18", 45000)]


def test_prepare_for_save_normalizes(wig):
    wig.length_options.append(LengthOption(value="", price=10000))
    wig.length_options.append(LengthOption(value="24", price=0))
    wig.lace_size_options[0].price_multiplier = 999
    wig.density_options[0].additional_price = 500
    wig.density_options.append(DensityOption(value=" "))

    saved = prepare_for_save(wig)

    assert [o.value for o in saved.length_options] == ["14", "18"]
    assert saved.lace_size_options[0].price_multiplier == 0
    assert saved.density_options[0].additional_price == 0
    assert len(saved.density_options) == 3
    # Every density carries one row per saved length, base density included.
    for density in saved.density_options:
        assert [r.length_id for r in density.prices] == ["length-14", "length-18"]
    assert saved.price == 25000
    assert saved.original_price == 30000


def test_prepare_for_save_defaults_length_label():
    product = load_product({"id": 1, "length_options": [{"value": "20", "price": 50000}]})
    product.length_options[0].label = ""
    saved = prepare_for_save(product)
    assert saved.length_options[0].label == "20 inches"


def test_prepare_for_save_without_length_options(wig):
    wig.price = 60000
    saved = prepare_for_save(wig, length_options_enabled=False)
    assert saved.length_options == []
    assert saved.price == 60000
    assert all(d.prices == [] for d in saved.density_options)


def test_rename_length_rekeys_matrix(wig):
    lengths, densities = rename_length(
        wig.length_options, wig.density_options, 1, "20 inches"
    )
    renamed = lengths[1]
    assert (renamed.value, renamed.id, renamed.label) == ("20", "length-20", "20 inches")
    rows = densities[1].prices
    assert [r.length_id for r in rows] == ["length-14", "length-20"]
    # The admin-entered price follows the renamed length.
    assert rows[1].price == 45000
    # Originals untouched.
    assert wig.length_options[1].value == "18"


def test_rename_length_keeps_custom_label(wig):
    wig.length_options[0].label = "Short bob"
    lengths, _ = rename_length(wig.length_options, wig.density_options, 0, "12")
    assert lengths[0].label == "Short bob"
    assert lengths[0].id == "length-12"


def test_remove_length_keeps_last_one(wig):
    lengths, densities = remove_length(wig.length_options, wig.density_options, 0)
    assert [o.value for o in lengths] == ["18"]
    assert [r.length_id for r in densities[1].prices] == ["length-18"]

    lengths, _ = remove_length(lengths, densities, 0)
    assert [o.value for o in lengths] == ["18"]


def test_remove_base_density_promotes_next(wig):
    densities = remove_density(wig.density_options, 0)
    assert densities[0].value == "200%"
    assert densities[0].additional_price == 0
    assert wig.density_options[1].additional_price == 8000


def test_remove_only_density_is_refused():
    only = [DensityOption(value="180%")]
    assert remove_density(only, 0) == only


def test_rename_density_regenerates_auto_label(wig):
    densities = rename_density(wig.density_options, 2, "300%")
    assert densities[2].label == "300% Density"

    wig.density_options[2].label = "Extra full"
    densities = rename_density(wig.density_options, 2, "300%")
    assert densities[2].label == "Extra full"


def test_record_round_trip_is_stable(wig):
    saved = prepare_for_save(wig)
    assert load_product(saved.to_record()).to_record() == saved.to_record()


def test_wig_record_helper_is_loadable():
    assert load_product(wig_record()).name == "Bone Straight Frontal"


def test_to_amount_coercion():
    assert to_amount("25,000") == 25000
    assert to_amount(249.6) == 250
    assert to_amount(None) == 0
    assert to_amount(True) == 0
    assert to_amount(float("nan")) == 0
    assert to_amount(float("inf")) == 0
    assert to_amount("9" * 400) == 0
    assert to_amount("n/a") == 0


def test_to_bool_reads_form_strings():
    assert to_bool("false") is False
    assert to_bool("0") is False
    assert to_bool(" True ") is True
    assert to_bool(1) is True
