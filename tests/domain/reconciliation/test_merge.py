from __future__ import annotations

from fleetrecon.domain.model import Confidence, FinancingType, SourceFile
from fleetrecon.domain.reconciliation import merge_candidates, merge_fragments
from tests.helpers.records import make_candidate


def test_primary_values_win_and_gaps_are_filled() -> None:
    primary = make_candidate(year=2020, purchase_price=45000, serial_vin=None)
    secondary = make_candidate(year=2021, purchase_price=0, serial_vin="B3NJ1", monthly_payment=900)

    merged = merge_candidates(primary, secondary)

    assert merged.year == 2020
    assert merged.purchase_price == 45000
    assert merged.serial_vin == "B3NJ1"
    assert merged.monthly_payment == 900


def test_zero_in_primary_counts_as_missing() -> None:
    primary = make_candidate(purchase_price=0)
    secondary = make_candidate(purchase_price=45000)

    assert merge_candidates(primary, secondary).purchase_price == 45000


def test_non_owned_financing_type_is_preferred() -> None:
    owned = make_candidate(financing_type=FinancingType.OWNED)
    leased = make_candidate(financing_type=FinancingType.LEASED)

    assert merge_candidates(owned, leased).financing_type is FinancingType.LEASED
    assert merge_candidates(leased, owned).financing_type is FinancingType.LEASED
    assert merge_candidates(make_candidate(), owned).financing_type is FinancingType.OWNED


def test_provenance_is_unioned_without_duplicates() -> None:
    primary = make_candidate(
        files=["invoice.pdf"],
        source_document_indices=(0,),
        notes="Invoice",
        confidence=Confidence.LOW,
    )
    secondary = make_candidate(
        files=["invoice.pdf", "finance.pdf"],
        source_document_indices=(1, 0),
        notes="Finance agreement",
        confidence=Confidence.HIGH,
    )

    merged = merge_candidates(primary, secondary)

    assert merged.source_files == (
        SourceFile(file_name="invoice.pdf"),
        SourceFile(file_name="finance.pdf"),
    )
    assert merged.source_document_indices == (0, 1)
    assert merged.notes == "Invoice; Finance agreement"
    assert merged.confidence is Confidence.HIGH


def test_parent_index_zero_is_kept() -> None:
    primary = make_candidate(suggested_parent_index=0)
    secondary = make_candidate(suggested_parent_index=4)

    assert merge_candidates(primary, secondary).suggested_parent_index == 0
    assert merge_candidates(make_candidate(), secondary).suggested_parent_index == 4


def test_merging_a_record_into_itself_is_a_no_op() -> None:
    record = make_candidate(
        year=2020,
        purchase_price=45000,
        financing_type=FinancingType.FINANCED,
        monthly_payment=900,
        notes="Invoice",
        files=["invoice.pdf"],
        source_document_indices=(0,),
    )

    assert merge_candidates(record, record) == record


def test_merge_fragments_folds_left_to_right() -> None:
    primary = make_candidate(purchase_price=45000)
    second = make_candidate(serial_vin="FIRST")
    third = make_candidate(serial_vin="SECOND", sales_tax=3000)

    merged = merge_fragments(primary, [second, third])

    assert merged.serial_vin == "FIRST"
    assert merged.sales_tax == 3000
    assert merge_fragments(primary, []) == primary
