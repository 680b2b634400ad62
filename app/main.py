"""
Streamlit Frontend for MoneyFlow

Import a bank statement, settle the possible duplicates, and look at the
resulting ledger.

DESIGN PRINCIPLES:
1. Nothing is written while conflicts are open
2. Every possible duplicate is shown next to the entry it matches
3. Clear outcome messages for every import
4. No hidden actions

All behavior goes through StatementImportFlow; this module only renders.
"""

from decimal import Decimal

import streamlit as st

from src.models.transaction import ConflictRecord, ImportOutcome, ImportReport, Resolution
from src.orchestrator import StatementImportFlow, create_app_components
from src.parsing import StatementReadError
from src.reconciliation import SessionStateError
from src.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="MoneyFlow",
    page_icon="💸",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


OUTCOME_MESSAGES = {
    ImportOutcome.NOTHING_IMPORTABLE: ("warning-box", "No transactions found in this file."),
    ImportOutcome.NOTHING_NEW: ("info-box", "Everything in this file is already in your ledger."),
    ImportOutcome.IMPORTED: ("success-box", "Import complete."),
    ImportOutcome.COMMITTED: ("success-box", "All conflicts settled. Import complete."),
    ImportOutcome.ABANDONED: ("info-box", "Import cancelled. Nothing was saved."),
}


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components(use_storage=True)


def format_amount(amount: Decimal) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def main():
    """Main application entry point."""
    import_flow, _ = get_components()

    # Sidebar navigation
    st.sidebar.title("💸 MoneyFlow")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📥 Import Statement", "📒 Transactions", "🧾 Bills", "⚙️ Settings"],
        index=0,
        disabled=import_flow.active_session is not None,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to import:**
        1. Export a CSV statement from your bank
        2. Upload it here
        3. Settle any possible duplicates
        """
    )

    # Route to appropriate page
    if page == "📥 Import Statement" or import_flow.active_session is not None:
        render_import_page(import_flow)
    elif page == "📒 Transactions":
        render_transactions_page(import_flow)
    elif page == "🧾 Bills":
        render_bills_page(import_flow)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_report(report: ImportReport):
    """Show the outcome of the last import step."""
    box, headline = OUTCOME_MESSAGES.get(report.outcome, ("info-box", ""))
    if not headline:
        return
    st.markdown(f"""
    <div class="{box}">
        <h4>{headline}</h4>
        <p>Read {report.parsed_count} transactions ({report.skipped_count} lines skipped).
        Added {report.appended_count}, replaced {report.replaced_count},
        already present {report.duplicate_count}.</p>
    </div>
    """, unsafe_allow_html=True)


def render_import_page(import_flow: StatementImportFlow):
    """Render the statement import page."""
    st.title("📥 Import Statement")

    if "last_report" not in st.session_state:
        st.session_state.last_report = None

    session = import_flow.active_session
    if session is not None:
        render_conflicts(import_flow)
        return

    if st.session_state.last_report is not None:
        render_report(st.session_state.last_report)

    uploaded_file = st.file_uploader(
        "Choose a CSV statement",
        type=["csv", "txt"],
        help="The export from your bank's website",
    )

    if uploaded_file and st.button("📥 Import", type="primary"):
        with st.spinner("Reading your statement..."):
            try:
                report = import_flow.import_bytes(uploaded_file.getvalue(), uploaded_file.name)
            except StatementReadError as e:
                st.error(f"Could not read this file: {e.reason}")
                return
            except StorageError as e:
                st.error(f"Failed to save: {e}")
                return

        st.session_state.last_report = report
        st.rerun()


def render_conflict_card(import_flow: StatementImportFlow, conflict: ConflictRecord):
    candidate, existing = conflict.candidate, conflict.existing

    col1, col2, col3 = st.columns([3, 3, 2])
    with col1:
        st.markdown("**In your ledger**")
        st.markdown(
            f"{existing.iso_date} · {existing.description or '(no description)'}  \n"
            f"{format_amount(existing.amount)} · {existing.category.value}"
        )
    with col2:
        st.markdown("**From this statement**")
        st.markdown(
            f"{candidate.iso_date} · {candidate.description or '(no description)'}  \n"
            f"{format_amount(candidate.amount)} · {candidate.category.value}"
        )
    with col3:
        for label, resolution in (
            ("Keep old", Resolution.KEEP_OLD),
            ("Replace", Resolution.REPLACE),
            ("Keep both", Resolution.KEEP_BOTH),
        ):
            if st.button(label, key=f"{resolution.value}-{conflict.key}"):
                apply_decision(lambda: import_flow.resolve(conflict.key, resolution))
    st.markdown("---")


def apply_decision(action):
    try:
        st.session_state.last_report = action()
    except StorageError as e:
        st.error(f"Failed to save: {e}")
        return
    except SessionStateError as e:
        st.error(str(e))
        return
    st.rerun()


def render_conflicts(import_flow: StatementImportFlow):
    """Conflict cards plus the bulk and cancel actions."""
    session = import_flow.active_session
    pending = session.pending

    st.markdown(f"""
    <div class="warning-box">
        <h4>⚠️ {len(pending)} possible duplicates</h4>
        <p>These look like entries already in your ledger (same amount, a few days apart).
        Nothing is saved until every one is settled.
        {len(session.clean_queue)} new transactions are waiting to be added.</p>
    </div>
    """, unsafe_allow_html=True)

    for conflict in pending:
        render_conflict_card(import_flow, conflict)

    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("Keep all old"):
            apply_decision(lambda: import_flow.resolve_all(Resolution.KEEP_OLD))
    with col2:
        if st.button("Replace all"):
            apply_decision(lambda: import_flow.resolve_all(Resolution.REPLACE))
    with col3:
        if st.button("❌ Cancel import"):
            apply_decision(import_flow.cancel)


def render_transactions_page(import_flow: StatementImportFlow):
    """Render the ledger."""
    st.title("📒 Transactions")

    try:
        transactions = import_flow.ledger.list_transactions()
    except StorageError as e:
        st.error(f"Could not load transactions: {e}")
        return

    if not transactions:
        st.info("Your ledger is empty. Use the 'Import Statement' page to add transactions.")
        return

    st.dataframe(
        [
            {
                "Date": tx.iso_date,
                "Description": tx.description,
                "Amount": float(tx.amount),
                "Category": tx.category.value,
            }
            for tx in sorted(transactions, key=lambda tx: tx.date, reverse=True)
        ],
        use_container_width=True,
    )


def render_bills_page(import_flow: StatementImportFlow):
    """Render the configured bills."""
    st.title("🧾 Bills")
    st.markdown(
        "Transactions whose description contains a bill's name are filed under "
        "Bills (or Debt, for loans and cards)."
    )

    try:
        bills = import_flow.bills.list_bills()
    except StorageError as e:
        st.error(f"Could not load bills: {e}")
        return

    if not bills:
        st.info("No bills configured yet.")
        return

    st.dataframe(
        [
            {"Name": bill.name, "Amount": float(bill.amount), "Day": bill.day}
            for bill in bills
        ],
        use_container_width=True,
    )


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    from src.config import validate_all_settings

    status = validate_all_settings()

    groups = [
        ("Statement import", "imports"),
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application", "app"),
    ]

    for name, key in groups:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
