import textwrap
from datetime import date
from decimal import Decimal

from recurring_charges import (
    DetectionReportPayload,
    DetectorConfig,
    Frequency,
    RejectionReason,
    analyze_statement,
    detect_recurring_subscriptions,
    detect_with_near_misses,
)


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n").rstrip()


STATEMENT = _dedent(
    """
    Date,Description,Amount
    2024-01-01,NETFLIX.COM,15.99
    2024-02-01,Netflix.com,15.99
    2024-02-10,Refund NETFLIX.COM,-15.99
    2024-03-01,NETFLIX.COM,15.99
    2024-04-01,NETFLIX COM,15.99
    2024-04-03,Whole Foods,82.10
    soon,Broken row,1.00
    """
)


def test_statement_with_monthly_charge_end_to_end():
    report = analyze_statement(STATEMENT)

    assert report.transactions_processed == 5
    assert report.parse_errors == ['Row 8: Invalid date "soon"']
    assert report.near_misses == []
    assert len(report.subscriptions) == 1

    sub = report.subscriptions[0]
    assert sub.merchant_name == "NETFLIX.COM"
    assert sub.normalized_merchant == "netflix com"
    assert sub.frequency is Frequency.MONTHLY
    assert sub.amount == Decimal("15.99")
    assert sub.occurrences == 4
    assert sub.interval_days == 30
    assert sub.last_charge_date == date(2024, 4, 1)
    assert sub.next_expected_charge == date(2024, 5, 1)
    assert sub.transaction_ids == ("tx-0", "tx-1", "tx-2", "tx-3")


def test_refunds_do_not_count_as_charges():
    text = _dedent(
        """
        Date,Description,Amount
        2024-01-01,Hulu,7.99
        2024-01-15,Hulu,-7.99
        2024-02-01,Hulu,7.99
        2024-02-15,Hulu,-7.99
        """
    )

    report = analyze_statement(text)

    assert report.transactions_processed == 2
    assert report.subscriptions == []


def test_two_occurrences_are_not_a_subscription():
    text = _dedent(
        """
        Date,Description,Amount
        2024-01-01,NETFLIX.COM,15.99
        2024-02-01,NETFLIX.COM,15.99
        """
    )

    report = analyze_statement(text)

    assert report.transactions_processed == 2
    assert report.subscriptions == []


def test_unparseable_statement_reports_single_error():
    report = analyze_statement("Date,Description,Amount")

    assert report.transactions_processed == 0
    assert report.subscriptions == []
    assert report.parse_errors == ["CSV must have header and at least one data row"]


def test_id_prefix_is_applied():
    report = analyze_statement(STATEMENT, id_prefix="stmt7")

    assert report.subscriptions[0].transaction_ids[0] == "stmt7-0"


def test_fewer_transactions_than_min_occurrences_short_circuits(make_tx):
    txs = [
        make_tx("tx-0", "2024-01-01", "NETFLIX.COM", "15.99"),
        make_tx("tx-1", "2024-02-01", "NETFLIX.COM", "15.99"),
    ]

    assert detect_recurring_subscriptions(txs) == []
    assert detect_with_near_misses(txs) == ([], [])


def _mixed_history(make_tx):
    return [
        make_tx("tx-0", "2024-01-01", "NETFLIX.COM", "15.99"),
        make_tx("tx-1", "2024-01-02", "City Gym", "40.00"),
        make_tx("tx-2", "2024-01-05", "Spotify USA", "9.99"),
        make_tx("tx-3", "2024-02-01", "NETFLIX.COM", "15.99"),
        make_tx("tx-4", "2024-01-31", "City Gym", "40.00"),
        make_tx("tx-5", "2024-02-05", "Spotify USA", "9.99"),
        make_tx("tx-6", "2024-03-01", "NETFLIX.COM", "15.99"),
        make_tx("tx-7", "2024-03-01", "City Gym", "40.00"),
        make_tx("tx-8", "2024-03-05", "Spotify USA", "9.99"),
        make_tx("tx-9", "2024-04-15", "City Gym", "40.00"),
        make_tx("tx-10", "2024-03-20", "Corner Deli", "6.50"),
    ]


def test_results_follow_merchant_group_order(make_tx):
    subs = detect_recurring_subscriptions(_mixed_history(make_tx))

    assert [s.merchant_name for s in subs] == ["NETFLIX.COM", "Spotify USA"]
    assert subs[1].transaction_ids == ("tx-2", "tx-5", "tx-8")


def test_near_misses_explain_rejected_groups(make_tx):
    subs, misses = detect_with_near_misses(_mixed_history(make_tx))

    assert [s.merchant_name for s in subs] == ["NETFLIX.COM", "Spotify USA"]
    assert len(misses) == 1
    assert misses[0].merchant_name == "City Gym"
    assert misses[0].reason is RejectionReason.INTERVAL_OUT_OF_BAND
    assert misses[0].occurrences == 4


def test_near_misses_only_in_report_when_requested():
    text = _dedent(
        """
        Date,Description,Amount
        2024-01-01,City Gym,40.00
        2024-01-31,City Gym,40.00
        2024-03-01,City Gym,40.00
        2024-04-15,City Gym,40.00
        """
    )

    assert analyze_statement(text).near_misses == []

    report = analyze_statement(text, DetectorConfig(collect_near_misses=True))
    assert [m.reason for m in report.near_misses] == [RejectionReason.INTERVAL_OUT_OF_BAND]


def test_concurrent_detection_matches_inline(make_tx):
    txs = _mixed_history(make_tx)

    inline = detect_recurring_subscriptions(txs)
    pooled = detect_recurring_subscriptions(txs, DetectorConfig(concurrency=4))

    assert pooled == inline


def test_report_payload_uses_camel_case_keys():
    report = analyze_statement(STATEMENT)

    body = DetectionReportPayload.from_report(report).model_dump(mode="json", by_alias=True)

    assert body["transactionsProcessed"] == 5
    assert body["detected"] == 1
    assert body["parseErrors"] == ['Row 8: Invalid date "soon"']
    assert body["nearMisses"] == []
    assert body["subscriptions"][0] == {
        "merchantName": "NETFLIX.COM",
        "normalizedMerchant": "netflix com",
        "amount": 15.99,
        "frequency": "monthly",
        "intervalDays": 30,
        "occurrences": 4,
        "lastChargeDate": "2024-04-01",
        "nextExpectedCharge": "2024-05-01",
        "transactionIds": ["tx-0", "tx-1", "tx-2", "tx-3"],
        "monthlyEquivalent": 15.99,
    }


def test_long_reference_numbers_become_parse_errors_not_failures():
    ref = "123456789012345678901234567890"
    text = _dedent(
        f"""
        Posted,Payee,Ref
        2024-01-01,NETFLIX.COM,{ref}
        2024-02-01,NETFLIX.COM,{ref}
        2024-03-01,NETFLIX.COM,{ref}
        """
    )

    report = analyze_statement(text)

    assert report.subscriptions == []
    assert report.transactions_processed == 0
    assert report.parse_errors == [f'Row {n}: Invalid amount "{ref}"' for n in (2, 3, 4)]
