from __future__ import annotations

import pandas as pd
import plotly.graph_objects as go

from backoffice import viz
from backoffice.history import filter_transactions


def _annotation_text(fig: go.Figure) -> str:
    return fig.layout.annotations[0].text


def test_empty_inputs_render_placeholder_figures() -> None:
    assert _annotation_text(viz.plot_transaction_history(pd.DataFrame())) == "No transactions in range."
    assert _annotation_text(viz.plot_loans_by_branch([])) == "No sanctioned loans to display."
    assert _annotation_text(viz.plot_account_trends([])) == "No account activity to display."
    assert _annotation_text(viz.plot_loan_trends([])) == "No loan activity to display."
    assert _annotation_text(viz.plot_account_distribution([])) == "No accounts to display."
    assert _annotation_text(viz.plot_loan_types([{"name": "Personal", "value": 0.0}])) == "No loans to classify."


def test_transaction_history_figure_splits_credits_and_debits() -> None:
    view = filter_transactions(
        [
            {"amount": 500.0, "payMode": "CASH", "timestamp": "2024-03-04T10:00:00", "transactionType": "CREDIT"},
            {"amount": 200.0, "payMode": "CASH", "timestamp": "2024-03-20 4:00 PM", "transactionType": "DEBIT"},
            {"amount": 50.0, "payMode": "IMPS", "timestamp": "2024-04-02T10:00:00", "transactionType": "CREDIT"},
        ]
    )

    fig = viz.plot_transaction_history(view)

    names = [trace.name for trace in fig.data]
    assert names == ["Credited", "Withdrawn", "Net"]
    assert list(fig.data[0].y) == [500.0, 50.0]
    assert list(fig.data[1].y) == [-200.0, 0.0]
    assert list(fig.data[2].y) == [300.0, 50.0]


def test_loans_by_branch_figure() -> None:
    loans = pd.DataFrame(
        {"branchName": ["Dighi", "Moshi", "Dighi"], "loanAmount": [50_000, 25_000, "NA"]}
    )
    fig = viz.plot_loans_by_branch(loans)
    assert list(fig.data[0].x) == ["Dighi", "Moshi"]
    assert list(fig.data[0].y) == [50_000.0, 25_000.0]


def test_account_trends_draws_one_line_per_product() -> None:
    points = [
        {"name": "Jan 2025", "savings": 1200.0, "fd": 5000.0, "rd": 0.0},
        {"name": "Feb 2025", "savings": -300.0, "fd": 0.0, "rd": 500.0},
    ]

    fig = viz.plot_account_trends(points)

    assert [trace.name for trace in fig.data] == ["Savings", "Fixed deposits", "Recurring deposits"]
    assert list(fig.data[0].x) == ["Jan 2025", "Feb 2025"]
    assert list(fig.data[2].y) == [0.0, 500.0]


def test_loan_trends_groups_disbursed_and_repaid() -> None:
    fig = viz.plot_loan_trends([{"name": "Mar 2025", "loans": 75_000.0, "repaid": 4_100.0}])

    assert fig.layout.barmode == "group"
    assert [trace.name for trace in fig.data] == ["Disbursed", "Repaid"]
    assert list(fig.data[1].y) == [4_100.0]


def test_share_figures() -> None:
    distribution = viz.plot_account_distribution(
        [{"name": "Savings", "value": 40.0}, {"name": "Fixed Deposit", "value": 12.0}]
    )
    types = viz.plot_loan_types([{"name": "Personal", "value": 3.0}, {"name": "Group Lending", "value": 1.0}])

    assert list(distribution.data[0].values) == [40.0, 12.0]
    assert not distribution.data[0].hole
    assert types.data[0].hole == 0.6
    assert list(types.data[0].labels) == ["Personal", "Group Lending"]
