"""Tests for quote creation, pricing, proposals, status changes and edits."""
from datetime import datetime, timedelta, timezone

import pytest

from expressflow.exceptions import (
    PricingValidationError,
    QuoteValidationError,
    StatusTransitionError,
)
from expressflow.models import (
    CargoItem,
    CargoType,
    Incoterm,
    ModalType,
    QuoteForm,
    QuoteStatus,
    Role,
)
from expressflow.services import lifecycle
from expressflow.services.calculations import best_option_indexes, prepare_sales_options

from conftest import NOW, make_quote, make_rows


class TestDeriveRole:
    @pytest.mark.parametrize("modal, role", [
        (ModalType.SEA_FCL, Role.PRICING_SEA),
        (ModalType.SEA_LCL, Role.PRICING_SEA),
        (ModalType.SEA_PROJECT, Role.PRICING_SEA),
        (ModalType.AIR_CIA, Role.PRICING_AIR),
        (ModalType.AIR_COURIER, Role.PRICING_AIR),
        (ModalType.ROAD_NATIONAL, Role.PRICING_ROAD),
        (ModalType.ROAD_INTL, Role.PRICING_ROAD),
    ])
    def test_desk_follows_modal(self, modal, role):
        assert lifecycle.derive_role(modal) == role

    def test_cargo_type(self):
        assert lifecycle.derive_cargo_type(ModalType.SEA_FCL) == CargoType.FCL
        assert lifecycle.derive_cargo_type(ModalType.AIR_CIA) == CargoType.AIR
        assert lifecycle.derive_cargo_type(ModalType.SEA_LCL) == CargoType.LCL
        assert lifecycle.derive_cargo_type(ModalType.ROAD_NATIONAL) == CargoType.LCL


class TestRouteRequirements:
    def test_road_needs_both_addresses(self):
        req = lifecycle.route_requirements(ModalType.ROAD_NATIONAL, Incoterm.FOB)
        assert req == {"pickup_address": True, "delivery_address": True, "ports": False}

    def test_exw_needs_pickup(self):
        req = lifecycle.route_requirements(ModalType.SEA_FCL, Incoterm.EXW)
        assert req["pickup_address"] is True
        assert req["delivery_address"] is False
        assert req["ports"] is True

    def test_ddp_needs_delivery(self):
        req = lifecycle.route_requirements(ModalType.AIR_CIA, Incoterm.DDP)
        assert req["pickup_address"] is False
        assert req["delivery_address"] is True


class TestValidateQuoteForm:
    def test_valid_form(self, quote_form):
        assert lifecycle.validate_quote_form(quote_form) == (True, [])

    def test_missing_fields_reported_together(self):
        is_valid, errors = lifecycle.validate_quote_form(QuoteForm(client_name="  "))
        assert not is_valid
        assert len(errors) == len(lifecycle.REQUIRED_FIELDS)
        assert "Client name is required" in errors

    def test_bad_time(self, quote_form):
        form = quote_form.model_copy(update={"created_time": "25:61"})
        is_valid, errors = lifecycle.validate_quote_form(form)
        assert not is_valid
        assert any("HH:MM" in e for e in errors)

    def test_form_accepts_camel_case_and_iso_timestamp(self):
        form = QuoteForm.model_validate({
            "clientName": "Acme",
            "modalMain": "Aéreo Cia",
            "operationType": "Export",
            "incoterm": "FCA",
            "createdDate": "2025-12-01T09:30:00+00:00",
            "createdTime": "09:30",
            "pol_aol": "GRU",
        })
        assert form.created_date.isoformat() == "2025-12-01"
        assert form.pol_aol == "GRU"
        assert lifecycle.validate_quote_form(form)[0]


class TestGenerateQuoteId:
    def test_first_id(self):
        assert lifecycle.generate_quote_id([], now=NOW) == "MTN-1001-12-25"

    def test_next_after_highest(self):
        ids = ["MTN-1001-11-25", "MTN-1007-12-25", "MTN-1003-12-25"]
        assert lifecycle.generate_quote_id(ids, now=NOW) == "MTN-1008-12-25"

    def test_ignores_foreign_ids(self):
        assert lifecycle.generate_quote_id(["XYZ-5000-01-25", "garbage"], now=NOW) == "MTN-1001-12-25"


class TestCreateQuote:
    def test_creates_pending_pricing_quote(self, quote_form, sales_user):
        quote = lifecycle.create_quote(quote_form, sales_user, now=NOW)

        assert quote.id == "MTN-1001-12-25"
        assert quote.status == QuoteStatus.PENDING_PRICING
        assert quote.requester_id == "u1"
        assert quote.assigned_pricing_role == Role.PRICING_SEA
        assert quote.cargo_type == CargoType.FCL
        assert quote.sent_to_pricing_at == NOW
        assert quote.pricing_options == []
        assert quote.created_date == datetime(2025, 12, 10, 9, 0, tzinfo=timezone.utc)
        assert quote.pol_aol == "Shanghai"

    def test_blank_cargo_value_matches_edit(self, quote_form, sales_user):
        created = lifecycle.create_quote(quote_form, sales_user, now=NOW)
        edited = lifecycle.edit_quote(created, quote_form)
        assert created.cargo_value is None
        assert edited.cargo_value is None

    def test_cargo_measures_computed(self, quote_form, sales_user):
        form = quote_form.model_copy(update={
            "modal_main": ModalType.AIR_CIA,
            "cargo_items": [CargoItem(id="1", qty=2, length=100, width=60, height=50, weight=10)],
        })
        quote = lifecycle.create_quote(form, sales_user, now=NOW)
        assert quote.assigned_pricing_role == Role.PRICING_AIR
        assert quote.cargo_items[0].chargeable_weight == 100

    def test_invalid_form_rejected(self, sales_user):
        with pytest.raises(QuoteValidationError) as exc:
            lifecycle.create_quote(QuoteForm(client_name="Acme"), sales_user, now=NOW)
        assert "Main modal is required" in exc.value.errors


class TestSubmitPricing:
    def test_three_rows_price_the_quote(self):
        quote = make_quote()
        rows = make_rows(100, 90, 95)

        priced = lifecycle.submit_pricing(quote, rows, now=NOW, min_valid=3)

        assert priced.status == QuoteStatus.PRICED
        assert priced.priced_at == NOW
        assert best_option_indexes(priced.pricing_options) == [1]
        assert priced.pricing_options[1].all_in_value == 90

    def test_too_few_valid_rows_rejected(self):
        quote = make_quote()
        with pytest.raises(PricingValidationError):
            lifecycle.submit_pricing(quote, make_rows(100, 90, 0), now=NOW, min_valid=3)
        assert quote.status == QuoteStatus.PENDING_PRICING
        assert quote.priced_at is None

    def test_rows_edited_in_place_are_recomputed(self):
        quote = make_quote()
        rows = make_rows(100, 90, 95)
        for row in rows:
            row.freight_rate = 0.0

        with pytest.raises(PricingValidationError):
            lifecycle.submit_pricing(quote, rows, now=NOW, min_valid=3)
        assert quote.status == QuoteStatus.PENDING_PRICING

    def test_stored_rows_carry_recomputed_totals(self):
        rows = make_rows(100, 90, 95)
        rows[0].all_in_value = 5000
        priced = lifecycle.submit_pricing(make_quote(), rows, now=NOW, min_valid=3)
        assert priced.pricing_options[0].all_in_value == 100
        assert priced.pricing_options[0] is not rows[0]

    def test_minimum_is_configurable(self):
        priced = lifecycle.submit_pricing(make_quote(), make_rows(100), now=NOW, min_valid=1)
        assert priced.status == QuoteStatus.PRICED


class TestSalesProposal:
    def test_moves_to_pending_sale(self):
        quote = lifecycle.submit_pricing(make_quote(), make_rows(100, 90, 95), now=NOW, min_valid=3)
        later = NOW + timedelta(hours=4)
        proposed = lifecycle.submit_sales_proposal(quote, quote.pricing_options, now=later)
        assert proposed.status == QuoteStatus.PENDING_SALE
        assert proposed.proposal_saved_at == later
        assert proposed.priced_at == NOW

    def test_profit_recomputed_from_sell_rates(self):
        quote = lifecycle.submit_pricing(make_quote(), make_rows(100, 90, 95), now=NOW, min_valid=3)
        options = prepare_sales_options(quote.pricing_options)
        options[0].sales_freight_rate = 160.0
        proposed = lifecycle.submit_sales_proposal(quote, options, now=NOW)
        assert proposed.pricing_options[0].sales_total == 160
        assert proposed.pricing_options[0].estimated_profit == 60


class TestChangeStatus:
    def test_permissive_by_default(self):
        quote = make_quote(status=QuoteStatus.CLOSED_WON)
        changed = lifecycle.change_status(quote, QuoteStatus.PENDING_PRICING, now=NOW, strict=False)
        assert changed.status == QuoteStatus.PENDING_PRICING
        assert changed.last_status_change == NOW

    def test_strict_blocks_leaving_terminal_state(self):
        quote = make_quote(status=QuoteStatus.CLOSED_WON)
        with pytest.raises(StatusTransitionError):
            lifecycle.change_status(quote, QuoteStatus.PENDING_SALE, now=NOW, strict=True)

    def test_strict_allows_listed_moves(self):
        quote = make_quote(status=QuoteStatus.PENDING_SALE)
        changed = lifecycle.change_status(quote, QuoteStatus.CLOSED_LOST, now=NOW, strict=True)
        assert changed.status == QuoteStatus.CLOSED_LOST

    def test_accepts_raw_value(self):
        changed = lifecycle.change_status(make_quote(), "REVALIDATION_REQ", now=NOW)
        assert changed.status == QuoteStatus.REVALIDATION_REQ

    def test_unknown_status(self):
        quote = make_quote()
        with pytest.raises(StatusTransitionError):
            lifecycle.change_status(quote, "WON", now=NOW)
        assert quote.status == QuoteStatus.PENDING_PRICING

    def test_cancel(self):
        cancelled = lifecycle.cancel_quote(make_quote(), now=NOW)
        assert cancelled.status == QuoteStatus.CANCELLED
        assert cancelled.last_status_change == NOW

    def test_transition_table(self):
        assert lifecycle.is_transition_allowed(QuoteStatus.PRICED, QuoteStatus.PENDING_SALE)
        assert lifecycle.is_transition_allowed(QuoteStatus.CANCELLED, QuoteStatus.CANCELLED)
        assert not lifecycle.is_transition_allowed(QuoteStatus.CANCELLED, QuoteStatus.PRICED)


class TestEditQuote:
    def test_preserves_workflow_fields(self, quote_form):
        original = lifecycle.submit_pricing(make_quote(), make_rows(100, 90, 95), now=NOW, min_valid=3)
        form = quote_form.model_copy(update={
            "client_name": "Tech Imports Brasil",
            "modal_main": ModalType.AIR_CIA,
            "incoterm": Incoterm.EXW,
        })

        edited = lifecycle.edit_quote(original, form)

        assert edited.client_name == "Tech Imports Brasil"
        assert edited.assigned_pricing_role == Role.PRICING_AIR
        assert edited.cargo_type == CargoType.AIR
        assert edited.id == original.id
        assert edited.status == QuoteStatus.PRICED
        assert edited.requester_id == original.requester_id
        assert edited.priced_at == original.priced_at
        assert edited.sent_to_pricing_at == original.sent_to_pricing_at
        assert edited.pricing_options == original.pricing_options

    def test_invalid_edit_rejected(self):
        with pytest.raises(QuoteValidationError):
            lifecycle.edit_quote(make_quote(), QuoteForm())
