"""Tests for the proposal, line-item, workflow and pricing routers."""
import os
import pytest
from decimal import Decimal
from datetime import datetime, timezone
from unittest.mock import patch, MagicMock
from uuid import uuid4
from fastapi import HTTPException

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")

from app.models.line_item import LineItemCreate, LineItemUpdate
from app.models.pricing import EstimateRequest, PricingCalculation, PricingRequest
from app.models.proposal import ProposalCreate, ProposalStatus, ProposalUpdate
from app.models.workflow import ReviewRequest, TransitionRequest

CONTRACTOR = {"id": str(uuid4()), "user_id": str(uuid4()), "name": "Clearview Glazing"}


def _proposal_row(**overrides) -> dict:
    row = {
        "id": str(uuid4()),
        "contractor_id": CONTRACTOR["id"],
        "status": "draft",
        "project_type": "storefront_installation",
        "client_name": "Harbor Dental",
        "client_email": "office@harbordental.com",
        "client_phone": "5551234567",
        "client_address": "12 Pier Rd",
        "project_name": "Lobby storefront",
        "project_description": "Replace lobby storefront",
        "subtotal": 500,
        "tax_rate": 0,
        "tax_amount": 0,
        "total_amount": 500,
        "created_at": "2026-03-01T09:00:00+00:00",
        "reviewed_at": None,
        "sent_at": None,
    }
    row.update(overrides)
    return row


def _pricing(total: float) -> PricingCalculation:
    return PricingCalculation(subtotal=total, tax_amount=0, total=total)


# ── Workflow router ──


class TestWorkflowTransition:
    @pytest.mark.asyncio
    @patch("app.routers.workflow.get_supabase")
    @patch("app.routers.workflow.record_transition")
    @patch("app.routers.workflow.fetch_line_items")
    @patch("app.routers.workflow.recalculate_totals")
    @patch("app.routers.workflow.verify_proposal_access")
    async def test_submit_for_review(
        self, mock_verify, mock_recalc, mock_items, mock_record, mock_db_fn
    ):
        from app.routers.workflow import transition_proposal

        row = _proposal_row()
        mock_verify.return_value = row
        mock_recalc.return_value = _pricing(500)
        mock_items.return_value = []
        mock_db = MagicMock()
        mock_db_fn.return_value = mock_db

        result = await transition_proposal(
            row["id"],
            TransitionRequest(to_status=ProposalStatus.REVIEW, notes="Ready for estimator"),
            contractor=CONTRACTOR,
        )

        assert result.status == ProposalStatus.REVIEW
        assert result.status_label == "Under Review"
        assert result.progress == pytest.approx(33.33, abs=0.01)
        assert result.next_states == [ProposalStatus.READY_TO_SEND]

        updates = mock_db.table.return_value.update.call_args.args[0]
        assert updates["status"] == "review"
        assert "sent_at" not in updates

        record_kwargs = mock_record.call_args.kwargs
        assert record_kwargs["from_status"] == "draft"
        assert record_kwargs["to_status"] == "review"
        assert record_kwargs["reason"] == "Ready for estimator"
        assert record_kwargs["actor_id"] == CONTRACTOR["user_id"]

    @pytest.mark.asyncio
    @patch("app.routers.workflow.get_supabase")
    @patch("app.routers.workflow.record_transition")
    @patch("app.routers.workflow.fetch_line_items")
    @patch("app.routers.workflow.recalculate_totals")
    @patch("app.routers.workflow.verify_proposal_access")
    async def test_rejected_transition_returns_all_errors(
        self, mock_verify, mock_recalc, mock_items, mock_record, mock_db_fn
    ):
        from app.routers.workflow import transition_proposal

        row = _proposal_row(client_email="", project_description=None)
        mock_verify.return_value = row
        mock_recalc.return_value = _pricing(500)
        mock_items.return_value = []

        with pytest.raises(HTTPException) as exc:
            await transition_proposal(
                row["id"], TransitionRequest(to_status=ProposalStatus.REVIEW), contractor=CONTRACTOR
            )

        assert exc.value.status_code == 422
        assert exc.value.detail["errors"] == [
            "Client email is required",
            "Project description is required",
        ]
        mock_record.assert_not_called()
        mock_db_fn.return_value.table.return_value.update.assert_not_called()

    @pytest.mark.asyncio
    @patch("app.routers.workflow.get_supabase")
    @patch("app.routers.workflow.record_transition")
    @patch("app.routers.workflow.fetch_line_items")
    @patch("app.routers.workflow.recalculate_totals")
    @patch("app.routers.workflow.verify_proposal_access")
    async def test_approval_uses_recomputed_total(
        self, mock_verify, mock_recalc, mock_items, mock_record, mock_db_fn
    ):
        from app.routers.workflow import transition_proposal

        # Stored total is stale; the line items now sum to zero
        row = _proposal_row(
            status="review", reviewed_at="2026-03-02T10:00:00+00:00", total_amount=500
        )
        mock_verify.return_value = row
        mock_recalc.return_value = _pricing(0)
        mock_items.return_value = []

        with pytest.raises(HTTPException) as exc:
            await transition_proposal(
                row["id"],
                TransitionRequest(to_status=ProposalStatus.READY_TO_SEND),
                contractor=CONTRACTOR,
            )

        assert exc.value.status_code == 422
        assert exc.value.detail["errors"] == ["Total amount must be greater than 0"]

    @pytest.mark.asyncio
    @patch("app.routers.workflow.get_supabase")
    @patch("app.routers.workflow.record_transition")
    @patch("app.routers.workflow.fetch_line_items")
    @patch("app.routers.workflow.recalculate_totals")
    @patch("app.routers.workflow.verify_proposal_access")
    async def test_approval_records_warnings(
        self, mock_verify, mock_recalc, mock_items, mock_record, mock_db_fn
    ):
        from app.routers.workflow import transition_proposal

        row = _proposal_row(
            status="review", reviewed_at="2026-03-02T10:00:00+00:00", client_phone=None
        )
        mock_verify.return_value = row
        mock_recalc.return_value = _pricing(500)
        mock_items.return_value = []

        result = await transition_proposal(
            row["id"],
            TransitionRequest(to_status=ProposalStatus.READY_TO_SEND),
            contractor=CONTRACTOR,
        )

        assert result.status == ProposalStatus.READY_TO_SEND
        assert mock_record.call_args.kwargs["metadata"] == {
            "warnings": ["Client phone number is missing"]
        }

    @pytest.mark.asyncio
    @patch("app.routers.workflow.get_supabase")
    @patch("app.routers.workflow.record_transition")
    @patch("app.routers.workflow.fetch_line_items")
    @patch("app.routers.workflow.recalculate_totals")
    @patch("app.routers.workflow.verify_proposal_access")
    async def test_send_sets_sent_at(
        self, mock_verify, mock_recalc, mock_items, mock_record, mock_db_fn
    ):
        from app.routers.workflow import transition_proposal

        row = _proposal_row(status="ready_to_send", reviewed_at="2026-03-02T10:00:00+00:00")
        mock_verify.return_value = row
        mock_recalc.return_value = _pricing(500)
        mock_items.return_value = []
        mock_db = MagicMock()
        mock_db_fn.return_value = mock_db

        result = await transition_proposal(
            row["id"], TransitionRequest(to_status=ProposalStatus.SENT), contractor=CONTRACTOR
        )

        assert result.is_complete is True
        assert result.progress == 100
        assert result.next_states == []
        assert result.history[-1].status == ProposalStatus.SENT
        updates = mock_db.table.return_value.update.call_args.args[0]
        assert updates["sent_at"] == updates["updated_at"]

    @pytest.mark.asyncio
    @patch("app.routers.workflow.get_supabase")
    @patch("app.routers.workflow.record_transition")
    @patch("app.routers.workflow.fetch_line_items")
    @patch("app.routers.workflow.recalculate_totals")
    @patch("app.routers.workflow.verify_proposal_access")
    async def test_disallowed_pair_writes_nothing(
        self, mock_verify, mock_recalc, mock_items, mock_record, mock_db_fn
    ):
        from app.routers.workflow import transition_proposal

        row = _proposal_row(status="draft")
        mock_verify.return_value = row
        mock_items.return_value = []

        with pytest.raises(HTTPException) as exc:
            await transition_proposal(
                row["id"], TransitionRequest(to_status=ProposalStatus.SENT), contractor=CONTRACTOR
            )

        assert exc.value.status_code == 422
        assert exc.value.detail["errors"] == ["Invalid transition from draft to sent"]
        mock_recalc.assert_not_called()
        mock_record.assert_not_called()
        mock_db_fn.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["sent", "archived"])
    @patch("app.routers.workflow.get_supabase")
    @patch("app.routers.workflow.record_transition")
    @patch("app.routers.workflow.fetch_line_items")
    @patch("app.routers.workflow.recalculate_totals")
    @patch("app.routers.workflow.verify_proposal_access")
    async def test_terminal_or_unknown_status_not_repriced(
        self, mock_verify, mock_recalc, mock_items, mock_record, mock_db_fn, status
    ):
        from app.routers.workflow import transition_proposal

        row = _proposal_row(status=status)
        mock_verify.return_value = row
        mock_items.return_value = []

        with pytest.raises(HTTPException) as exc:
            await transition_proposal(
                row["id"], TransitionRequest(to_status=ProposalStatus.REVIEW), contractor=CONTRACTOR
            )

        assert exc.value.status_code == 422
        assert exc.value.detail["errors"] == [f"Invalid transition from {status} to review"]
        mock_recalc.assert_not_called()
        mock_db_fn.assert_not_called()


class TestWorkflowQueries:
    @pytest.mark.asyncio
    @patch("app.routers.workflow.fetch_line_items")
    @patch("app.routers.workflow.verify_proposal_access")
    async def test_unknown_status_is_conflict(self, mock_verify, mock_items):
        from app.routers.workflow import get_workflow_state

        row = _proposal_row(status="archived")
        mock_verify.return_value = row
        mock_items.return_value = []

        with pytest.raises(HTTPException) as exc:
            await get_workflow_state(row["id"], contractor=CONTRACTOR)
        assert exc.value.status_code == 409
        assert "archived" in exc.value.detail

    @pytest.mark.asyncio
    @patch("app.routers.workflow.fetch_line_items")
    @patch("app.routers.workflow.verify_proposal_access")
    async def test_get_state(self, mock_verify, mock_items):
        from app.routers.workflow import get_workflow_state

        row = _proposal_row()
        mock_verify.return_value = row
        mock_items.return_value = []

        result = await get_workflow_state(row["id"], contractor=CONTRACTOR)
        assert result.status == ProposalStatus.DRAFT
        assert result.progress == 0
        assert result.next_states == [ProposalStatus.REVIEW]
        assert [h.notes for h in result.history] == ["Proposal created"]

    @pytest.mark.asyncio
    @patch("app.routers.workflow.fetch_line_items")
    @patch("app.routers.workflow.verify_proposal_access")
    async def test_dry_run_validation(self, mock_verify, mock_items):
        from app.routers.workflow import validate_transition

        row = _proposal_row(client_name="")
        mock_verify.return_value = row
        mock_items.return_value = []

        result = await validate_transition(
            row["id"], TransitionRequest(to_status=ProposalStatus.REVIEW), contractor=CONTRACTOR
        )
        assert result.is_valid is False
        assert result.errors == ["Client name is required"]

    @pytest.mark.asyncio
    @patch("app.routers.workflow.verify_proposal_access")
    async def test_requirements(self, mock_verify):
        from app.routers.workflow import get_requirements

        row = _proposal_row(status="review")
        mock_verify.return_value = row

        result = await get_requirements(
            row["id"], ProposalStatus.READY_TO_SEND, contractor=CONTRACTOR
        )
        assert result.requires_approval is True


class TestMarkReviewed:
    @pytest.mark.asyncio
    @patch("app.routers.workflow.verify_proposal_access")
    async def test_only_in_review(self, mock_verify):
        from app.routers.workflow import mark_reviewed

        row = _proposal_row(status="draft")
        mock_verify.return_value = row

        with pytest.raises(HTTPException) as exc:
            await mark_reviewed(row["id"], ReviewRequest(), contractor=CONTRACTOR)
        assert exc.value.status_code == 409

    @pytest.mark.asyncio
    @patch("app.routers.workflow.get_supabase")
    @patch("app.routers.workflow.record_transition")
    @patch("app.routers.workflow.fetch_line_items")
    @patch("app.routers.workflow.verify_proposal_access")
    async def test_sets_reviewed_at(self, mock_verify, mock_items, mock_record, mock_db_fn):
        from app.routers.workflow import mark_reviewed

        row = _proposal_row(status="review")
        mock_verify.return_value = row
        mock_items.return_value = []
        mock_db = MagicMock()
        mock_db_fn.return_value = mock_db

        result = await mark_reviewed(
            row["id"], ReviewRequest(notes="Checked glass takeoff"), contractor=CONTRACTOR
        )

        updates = mock_db.table.return_value.update.call_args.args[0]
        assert updates["review_notes"] == "Checked glass takeoff"
        assert updates["reviewed_at"]
        assert result.history[-1].notes == "Checked glass takeoff"
        assert mock_record.call_args.kwargs["metadata"] == {"action": "reviewed"}


# ── Proposals router ──


class TestProposalsRouter:
    def test_search_filter_quotes_value(self):
        from app.routers.proposals import _search_filter

        assert _search_filter('Say "hi" \\ bye') == (
            'project_name.ilike."%Say \\"hi\\" \\\\ bye%",'
            'client_name.ilike."%Say \\"hi\\" \\\\ bye%"'
        )

    @pytest.mark.asyncio
    @patch("app.routers.proposals.get_supabase")
    async def test_search_with_filter_syntax_characters(self, mock_db_fn):
        from app.routers.proposals import list_proposals

        mock_db = MagicMock()
        mock_db_fn.return_value = mock_db
        query = mock_db.table.return_value.select.return_value.eq.return_value
        query.or_.return_value.order.return_value.range.return_value.execute.return_value.data = []

        result = await list_proposals(
            contractor=CONTRACTOR, status=None, project_type=None, search="Smith, Jones (North)"
        )

        assert result == []
        query.or_.assert_called_once_with(
            'project_name.ilike."%Smith, Jones (North)%",'
            'client_name.ilike."%Smith, Jones (North)%"'
        )

    @pytest.mark.asyncio
    @patch("app.routers.proposals.record_transition")
    @patch("app.routers.proposals.get_supabase")
    async def test_create_starts_as_draft(self, mock_db_fn, mock_record):
        from app.routers.proposals import create_proposal

        mock_db = MagicMock()
        mock_db_fn.return_value = mock_db
        mock_db.table.return_value.insert.return_value.execute.return_value.data = [
            _proposal_row(subtotal=0, total_amount=0)
        ]

        body = ProposalCreate(
            project_type="storefront_installation",
            client_name="Harbor Dental",
            project_name="Lobby storefront",
        )
        result = await create_proposal(body, contractor=CONTRACTOR)

        inserted = mock_db.table.return_value.insert.call_args.args[0]
        assert inserted["status"] == "draft"
        assert inserted["project_type"] == "storefront_installation"
        assert inserted["contractor_id"] == CONTRACTOR["id"]
        assert inserted["subtotal"] == inserted["tax_amount"] == inserted["total_amount"] == 0
        assert inserted["tax_rate"] == 0.0
        assert result["line_items"] == []
        assert mock_record.call_args.kwargs["from_status"] is None

    @pytest.mark.asyncio
    @patch("app.routers.proposals.verify_proposal_access")
    async def test_sent_proposal_is_read_only(self, mock_verify):
        from app.routers.proposals import update_proposal

        row = _proposal_row(status="sent")
        mock_verify.return_value = row

        with pytest.raises(HTTPException) as exc:
            await update_proposal(row["id"], ProposalUpdate(client_name="X"), contractor=CONTRACTOR)
        assert exc.value.status_code == 409

    @pytest.mark.asyncio
    @patch("app.routers.proposals.verify_proposal_access")
    async def test_empty_update_rejected(self, mock_verify):
        from app.routers.proposals import update_proposal

        row = _proposal_row()
        mock_verify.return_value = row

        with pytest.raises(HTTPException) as exc:
            await update_proposal(row["id"], ProposalUpdate(), contractor=CONTRACTOR)
        assert exc.value.status_code == 400

    @pytest.mark.asyncio
    @patch("app.routers.proposals.fetch_line_items")
    @patch("app.routers.proposals.recalculate_totals")
    @patch("app.routers.proposals.get_supabase")
    @patch("app.routers.proposals.verify_proposal_access")
    async def test_tax_change_reprices(self, mock_verify, mock_db_fn, mock_recalc, mock_items):
        from app.routers.proposals import update_proposal

        row = _proposal_row()
        mock_verify.return_value = row
        mock_db = MagicMock()
        mock_db_fn.return_value = mock_db
        mock_db.table.return_value.update.return_value.eq.return_value.eq.return_value.execute.return_value.data = [
            {**row, "tax_rate": 10}
        ]
        mock_recalc.return_value = PricingCalculation(subtotal=500, tax_amount=50, total=550)
        mock_items.return_value = []

        result = await update_proposal(
            row["id"], ProposalUpdate(tax_rate=Decimal("10")), contractor=CONTRACTOR
        )

        mock_recalc.assert_called_once_with(row["id"], tax_rate=10.0)
        assert result["total_amount"] == 550

    @pytest.mark.asyncio
    @patch("app.routers.proposals.fetch_line_items")
    @patch("app.routers.proposals.verify_proposal_access")
    async def test_pricing_snapshot(self, mock_verify, mock_items):
        from app.routers.proposals import get_proposal_pricing

        row = _proposal_row(tax_rate=10)
        mock_verify.return_value = row
        mock_items.return_value = [
            {"id": str(uuid4()), "category": "material", "description": "Glass",
             "quantity": 2, "unit_price": 10, "total": 20},
            {"id": str(uuid4()), "category": "labor", "description": "Install",
             "quantity": 1, "unit_price": 5, "total": 5},
        ]

        result = await get_proposal_pricing(row["id"], contractor=CONTRACTOR)
        assert result.subtotal == 25
        assert result.total == pytest.approx(27.5)

    @pytest.mark.asyncio
    @patch("app.pdf.proposal_generator.generate_proposal_pdf")
    @patch("app.routers.proposals.verify_proposal_access")
    async def test_pdf_failure_is_500(self, mock_verify, mock_generate):
        from app.routers.proposals import generate_pdf

        row = _proposal_row()
        mock_verify.return_value = row
        mock_generate.side_effect = RuntimeError("weasyprint failed")

        with pytest.raises(HTTPException) as exc:
            await generate_pdf(row["id"], contractor=CONTRACTOR)
        assert exc.value.status_code == 500


# ── Line items router ──


class TestLineItemsRouter:
    def test_line_total(self):
        from app.routers.line_items import _line_total

        assert _line_total(Decimal("3"), Decimal("12.5"), None, False) == 37.5
        assert _line_total(3, 12.5, Decimal("30"), True) == 30.0
        assert _line_total(3, 12.5, Decimal("30"), False) == 37.5

    @pytest.mark.asyncio
    @patch("app.routers.line_items.recalculate_totals")
    @patch("app.routers.line_items.fetch_line_items")
    @patch("app.routers.line_items.get_supabase")
    @patch("app.routers.line_items.verify_proposal_access")
    async def test_add_computes_total_and_reprices(
        self, mock_verify, mock_db_fn, mock_items, mock_recalc
    ):
        from app.routers.line_items import add_line_item

        row = _proposal_row()
        mock_verify.return_value = row
        mock_items.return_value = [{"id": "existing"}]
        mock_db = MagicMock()
        mock_db_fn.return_value = mock_db
        mock_db.table.return_value.insert.return_value.execute.return_value.data = [{"id": "new"}]

        body = LineItemCreate(
            description="Insulated Glass Unit",
            quantity=Decimal("2"),
            unit_price=Decimal("10.5"),
        )
        await add_line_item(row["id"], body, contractor=CONTRACTOR)

        inserted = mock_db.table.return_value.insert.call_args.args[0]
        assert inserted["total"] == 21.0
        assert inserted["quantity"] == 2.0
        assert inserted["category"] == "material"
        assert inserted["order_index"] == 1
        assert inserted["proposal_id"] == row["id"]
        mock_recalc.assert_called_once_with(row["id"])

    @pytest.mark.asyncio
    @patch("app.routers.line_items.verify_proposal_access")
    async def test_sent_proposal_rejects_items(self, mock_verify):
        from app.routers.line_items import add_line_item

        row = _proposal_row(status="sent")
        mock_verify.return_value = row

        with pytest.raises(HTTPException) as exc:
            await add_line_item(
                row["id"], LineItemCreate(description="Late addition"), contractor=CONTRACTOR
            )
        assert exc.value.status_code == 409

    @pytest.mark.asyncio
    @patch("app.routers.line_items.verify_proposal_access")
    async def test_unknown_material(self, mock_verify):
        from app.routers.line_items import add_material_line_item

        mock_verify.return_value = _proposal_row()

        with pytest.raises(HTTPException) as exc:
            await add_material_line_item(uuid4(), "999", contractor=CONTRACTOR)
        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    @patch("app.routers.line_items.recalculate_totals")
    @patch("app.routers.line_items.get_supabase")
    @patch("app.routers.line_items.verify_proposal_access")
    async def test_update_recomputes_total(self, mock_verify, mock_db_fn, mock_recalc):
        from app.routers.line_items import update_line_item

        row = _proposal_row()
        mock_verify.return_value = row
        mock_db = MagicMock()
        mock_db_fn.return_value = mock_db
        mock_db.table.return_value.select.return_value.eq.return_value.eq.return_value.maybe_single.return_value.execute.return_value.data = {
            "quantity": 2, "unit_price": 10, "total": 20, "is_manual_override": False,
        }
        mock_db.table.return_value.update.return_value.eq.return_value.eq.return_value.execute.return_value.data = [{"id": "item"}]

        await update_line_item(
            row["id"], uuid4(), LineItemUpdate(quantity=Decimal("5")), contractor=CONTRACTOR
        )

        updated = mock_db.table.return_value.update.call_args.args[0]
        assert updated["total"] == 50.0
        assert updated["quantity"] == 5.0
        mock_recalc.assert_called_once()


# ── Pricing router ──


class TestPricingRouter:
    @pytest.mark.asyncio
    async def test_calculate(self):
        from app.routers.pricing import calculate

        body = PricingRequest(
            line_items=[
                {"category": "material", "description": "Glass", "quantity": 2, "unit_price": 10, "total": 20},
                {"category": "labor", "description": "Install", "quantity": 1, "unit_price": 5, "total": 5},
            ],
            tax_rate=10,
        )
        result = await calculate(body, contractor=CONTRACTOR)
        assert result.total == pytest.approx(27.5)
        assert len(result.category_breakdown) == 2

    @pytest.mark.asyncio
    async def test_materials_search(self):
        from app.routers.pricing import list_materials

        result = await list_materials(search="railing", category=None, contractor=CONTRACTOR)
        assert [m.name for m in result] == ["Stainless Steel Railings"]

    @pytest.mark.asyncio
    async def test_estimate_full(self):
        from app.routers.pricing import estimate

        body = EstimateRequest(
            square_footage=200,
            project_type="curtain_wall",
            hourly_rate=70,
            base_rate=40,
            complexity_multiplier=1.25,
            equipment_type="lift",
            duration_days=4,
        )
        result = await estimate(body, contractor=CONTRACTOR)
        assert result.labor_hours == pytest.approx(160)
        assert result.labor_cost == pytest.approx(11200)
        assert result.square_footage_price == pytest.approx(10000)
        assert result.equipment_cost == 1200

    @pytest.mark.asyncio
    async def test_estimate_partial_inputs(self):
        from app.routers.pricing import estimate

        result = await estimate(EstimateRequest(square_footage=100), contractor=CONTRACTOR)
        assert result.labor_hours == 0
        assert result.labor_cost is None
        assert result.equipment_cost is None


# ── Store helpers ──


class TestProposalStore:
    @patch("app.services.proposal_store.get_supabase")
    def test_missing_proposal_is_404(self, mock_db_fn):
        from app.services.proposal_store import verify_proposal_access

        mock_db = MagicMock()
        mock_db_fn.return_value = mock_db
        mock_db.table.return_value.select.return_value.eq.return_value.eq.return_value.maybe_single.return_value.execute.return_value = None

        with pytest.raises(HTTPException) as exc:
            verify_proposal_access(uuid4(), CONTRACTOR["id"])
        assert exc.value.status_code == 404

    @patch("app.services.proposal_store.get_supabase")
    def test_recalculate_persists_totals(self, mock_db_fn):
        from app.services.proposal_store import recalculate_totals

        mock_db = MagicMock()
        mock_db_fn.return_value = mock_db
        mock_db.table.return_value.select.return_value.eq.return_value.order.return_value.execute.return_value.data = [
            {"id": "1", "category": "material", "description": "Glass",
             "quantity": 2, "unit_price": 10, "total": 20},
        ]

        pricing = recalculate_totals(uuid4(), tax_rate=5)

        assert pricing.total == pytest.approx(21)
        persisted = mock_db.table.return_value.update.call_args.args[0]
        assert persisted == {"subtotal": 20, "tax_amount": 1.0, "total_amount": 21.0}

    @patch("app.services.proposal_store.get_supabase")
    def test_record_transition_row(self, mock_db_fn):
        from app.services.proposal_store import record_transition

        mock_db = MagicMock()
        mock_db_fn.return_value = mock_db
        proposal_id = uuid4()

        record_transition(
            proposal_id=proposal_id,
            from_status="draft",
            to_status="review",
            actor_type="contractor",
            actor_id=CONTRACTOR["user_id"],
            reason="Ready",
        )

        mock_db.table.assert_called_with("state_transitions")
        row = mock_db.table.return_value.insert.call_args.args[0]
        assert row["entity_type"] == "proposal"
        assert row["entity_id"] == str(proposal_id)
        assert row["actor_id"] == CONTRACTOR["user_id"]
        assert row["reason"] == "Ready"


# ── Auth ──


class TestAuth:
    def test_decode_valid_token(self):
        import jwt
        from app.auth import decode_access_token

        token = jwt.encode({"sub": "user-1", "aud": "authenticated"}, "secret", algorithm="HS256")
        assert decode_access_token(token, "secret")["sub"] == "user-1"

    def test_expired_token(self):
        import jwt
        from app.auth import decode_access_token

        token = jwt.encode(
            {"sub": "user-1", "aud": "authenticated", "exp": datetime(2020, 1, 1, tzinfo=timezone.utc)},
            "secret",
            algorithm="HS256",
        )
        with pytest.raises(HTTPException) as exc:
            decode_access_token(token, "secret")
        assert exc.value.detail == "Token expired"

    def test_wrong_secret(self):
        import jwt
        from app.auth import decode_access_token

        token = jwt.encode({"sub": "user-1", "aud": "authenticated"}, "secret", algorithm="HS256")
        with pytest.raises(HTTPException) as exc:
            decode_access_token(token, "other")
        assert exc.value.status_code == 401
