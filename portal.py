"""
Claims Portal - Lecturer Claims Streamlit App

One front end for every role, backed by the claimflow FastAPI server:
- Lecturers submit, edit and delete their claims with a live amount preview
- Programme coordinators and academic managers work their review queue
- HR manages accounts and downloads reports
"""
import os
from decimal import Decimal
from typing import Optional

import requests
import streamlit as st

# ============================================
# CONFIGURATION
# ============================================

DEFAULT_API_URL = os.getenv("CLAIMFLOW_API_URL", "http://localhost:8000")
ROLES = ["Lecturer", "ProgrammeCoordinator", "AcademicManager", "HR"]
DOCUMENT_TYPES = ["pdf", "doc", "docx", "jpg", "jpeg", "png"]


def get_api_url() -> str:
    """Get the API base URL from session state."""
    return st.session_state.get("api_url", DEFAULT_API_URL)


def auth_headers() -> dict:
    token = st.session_state.get("token")
    return {"Authorization": f"Bearer {token}"} if token else {}


# ============================================
# PAGE CONFIG & STYLING
# ============================================

st.set_page_config(
    page_title="Claims Portal",
    page_icon="📋",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .status-badge {
        padding: 4px 12px;
        border-radius: 12px;
        font-size: 0.85rem;
        font-weight: 500;
    }
    .status-Submitted {background: #e3f2fd; color: #1565c0;}
    .status-ApprovedByCoordinator {background: #fff3e0; color: #ef6c00;}
    .status-Paid {background: #e8f5e9; color: #2e7d32;}
    .status-Rejected {background: #ffebee; color: #c62828;}
</style>
""", unsafe_allow_html=True)


# ============================================
# API HELPER FUNCTIONS
# ============================================

def show_api_error(response: requests.Response, action: str) -> None:
    """Display the workflow error message returned by the API."""
    try:
        body = response.json()
    except ValueError:
        st.error(f"❌ Failed to {action}: HTTP {response.status_code}")
        return

    st.error(f"❌ {body.get('message', f'Failed to {action}')}")
    for field_error in body.get("details", {}).get("fields", []):
        st.caption(f"• {field_error['field']}: {field_error['message']}")


def api_call(method: str, path: str, action: str, **kwargs) -> Optional[requests.Response]:
    """Call the API; returns None (after showing the error) on failure."""
    try:
        response = requests.request(
            method,
            f"{get_api_url()}{path}",
            headers=auth_headers(),
            timeout=30,
            **kwargs
        )
    except requests.exceptions.RequestException as e:
        st.error(f"❌ Cannot reach server: {str(e)}")
        return None

    if response.status_code >= 400:
        show_api_error(response, action)
        return None
    return response


def login(email: str, password: str) -> bool:
    response = api_call("POST", "/auth/login", "login", json={"email": email, "password": password})
    if response is None:
        return False
    data = response.json()
    st.session_state.token = data["access_token"]
    st.session_state.user = data["user"]
    return True


def preview_amount(hours: float) -> Optional[str]:
    response = api_call("POST", "/claims/amount-preview", "calculate amount", json={"hours_worked": str(hours)})
    return response.json()["formatted"] if response else None


def document_payload(upload) -> Optional[dict]:
    if upload is None:
        return None
    return {"documentation": (upload.name, upload.getvalue(), upload.type or "application/octet-stream")}


# ============================================
# UI COMPONENTS
# ============================================

def render_status_badge(status: str) -> str:
    return f'<span class="status-badge status-{status}">{status}</span>'


def render_claim_summary(claim: dict) -> None:
    col1, col2, col3 = st.columns(3)
    col1.metric("Hours", f"{Decimal(claim['hours_worked']):.2f}")
    col2.metric("Amount", f"R {Decimal(claim['amount']):,.2f}")
    col3.markdown(render_status_badge(claim["status"]), unsafe_allow_html=True)
    st.write(claim["description"])
    st.caption(f"Submitted {claim['submission_date'][:10]} · Document: {claim.get('original_file_name') or 'none'}")
    if claim.get("rejection_reason"):
        st.warning(f"Rejection reason: {claim['rejection_reason']}")


def render_login() -> None:
    st.title("📋 Claims Portal")
    with st.form("login_form"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        if st.form_submit_button("Login", type="primary"):
            if login(email, password):
                st.rerun()


# ============================================
# LECTURER VIEWS
# ============================================

def render_lecturer() -> None:
    tab_claims, tab_submit = st.tabs(["My Claims", "Submit Claim"])

    with tab_submit:
        render_submission_form()

    with tab_claims:
        response = api_call("GET", "/claims/", "load claims")
        claims = response.json() if response else []
        if not claims:
            st.info("You have not submitted any claims yet.")
        for claim in claims:
            with st.expander(f"{claim['title']} · {claim['status']}"):
                render_claim_summary(claim)
                if claim["status"] == "Submitted":
                    render_edit_form(claim)


def render_submission_form() -> None:
    st.subheader("📝 Submit a Claim")
    hours = st.number_input("Hours worked", min_value=0.0, max_value=180.0, value=1.0, step=0.5, key="new_hours")
    if hours > 0:
        amount = preview_amount(hours)
        if amount:
            st.caption(f"Amount at your current rate: R {amount}")

    with st.form("claim_form", clear_on_submit=True):
        title = st.text_input("Title *", max_chars=255)
        description = st.text_area("Description *", max_chars=1000, height=120)
        document = st.file_uploader("Supporting document * (max 5MB)", type=DOCUMENT_TYPES)

        if st.form_submit_button("🚀 Submit Claim", type="primary"):
            response = api_call(
                "POST",
                "/claims/",
                "submit claim",
                data={"title": title, "description": description, "hours_worked": str(hours)},
                files=document_payload(document),
            )
            if response is not None:
                st.success(response.json()["message"])


def render_edit_form(claim: dict) -> None:
    claim_id = claim["id"]
    with st.form(f"edit_{claim_id}"):
        title = st.text_input("Title", value=claim["title"], max_chars=255)
        description = st.text_area("Description", value=claim["description"], max_chars=1000)
        hours = st.number_input(
            "Hours worked", min_value=0.0, max_value=180.0, value=float(claim["hours_worked"]), step=0.5
        )
        document = st.file_uploader("Replace document (optional)", type=DOCUMENT_TYPES)
        save, delete = st.columns(2)
        if save.form_submit_button("💾 Save changes"):
            response = api_call(
                "PUT",
                f"/claims/{claim_id}",
                "update claim",
                data={"title": title, "description": description, "hours_worked": str(hours)},
                files=document_payload(document),
            )
            if response is not None:
                st.success("Claim updated successfully")
                st.rerun()
        if delete.form_submit_button("🗑️ Delete claim"):
            if api_call("DELETE", f"/claims/{claim_id}", "delete claim") is not None:
                st.success("Claim deleted successfully")
                st.rerun()


# ============================================
# REVIEWER VIEW
# ============================================

def render_reviewer() -> None:
    st.subheader("🔍 Review Queue")
    response = api_call("GET", "/review/queue", "load review queue")
    claims = response.json() if response else []
    if not claims:
        st.info("No claims are waiting for your review.")

    for claim in claims:
        with st.expander(f"{claim['title']} · R {Decimal(claim['amount']):,.2f}"):
            render_claim_summary(claim)
            reason = st.text_input("Rejection reason", key=f"reason_{claim['id']}")
            approve, reject = st.columns(2)
            if approve.button("✅ Approve", key=f"approve_{claim['id']}", type="primary"):
                result = api_call("POST", f"/review/{claim['id']}/approve", "approve claim")
                if result is not None:
                    st.success(result.json()["message"])
                    st.rerun()
            if reject.button("❌ Reject", key=f"reject_{claim['id']}"):
                result = api_call("POST", f"/review/{claim['id']}/reject", "reject claim", json={"reason": reason})
                if result is not None:
                    st.success(result.json()["message"])
                    st.rerun()


# ============================================
# HR VIEWS
# ============================================

def render_hr() -> None:
    tab_users, tab_new, tab_reports = st.tabs(["Users", "Add User", "Reports"])

    with tab_users:
        show_inactive = st.checkbox("Include inactive accounts")
        response = api_call("GET", "/users/", "load users", params={"active_only": not show_inactive})
        users = response.json() if response else []
        st.dataframe(
            [
                {
                    "Name": f"{u['name']} {u['surname']}",
                    "Email": u["email"],
                    "Role": u["role"],
                    "Hourly Rate": u.get("hourly_rate"),
                    "Active": u["is_active"],
                }
                for u in users
            ],
            use_container_width=True,
        )
        for user in users:
            with st.expander(f"Edit {user['name']} {user['surname']}"):
                with st.form(f"user_{user['id']}"):
                    rate = st.number_input(
                        "Hourly rate", min_value=0.0, value=float(user.get("hourly_rate") or 0), step=10.0
                    )
                    active = st.checkbox("Active", value=user["is_active"])
                    if st.form_submit_button("Save"):
                        result = api_call(
                            "PUT",
                            f"/users/{user['id']}",
                            "update user",
                            json={"hourly_rate": str(rate), "is_active": active},
                        )
                        if result is not None:
                            st.success("User updated successfully")

    with tab_new:
        with st.form("new_user", clear_on_submit=True):
            name = st.text_input("Name")
            surname = st.text_input("Surname")
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            role = st.selectbox("Role", ROLES)
            rate = st.number_input("Hourly rate", min_value=0.0, value=0.0, step=10.0)
            if st.form_submit_button("Create user", type="primary"):
                payload = {
                    "name": name,
                    "surname": surname,
                    "email": email,
                    "password": password,
                    "role": role,
                    "hourly_rate": str(rate) if rate else None,
                }
                if api_call("POST", "/users/", "create user", json=payload) is not None:
                    st.success("User created successfully")

    with tab_reports:
        response = api_call("GET", "/reports/summary", "load report")
        if response is None:
            return
        report = response.json()
        summary = report["summary"]
        col1, col2, col3, col4 = st.columns(4)
        col1.metric("Paid Claims", summary["total_claims"])
        col2.metric("Total Amount", f"R {Decimal(summary['total_amount']):,.2f}")
        col3.metric("Total Hours", f"{Decimal(summary['total_hours']):.1f}")
        col4.metric("Active Lecturers", summary["active_lecturers"])

        csv_response = api_call("GET", "/reports/claims.csv", "export CSV")
        if csv_response is not None:
            st.download_button("⬇️ Download CSV", csv_response.content, "ClaimsReport.csv", "text/csv")
        pdf_response = api_call("GET", "/reports/claims.pdf", "export PDF")
        if pdf_response is not None:
            st.download_button("⬇️ Download PDF", pdf_response.content, "ClaimsReport.pdf", "application/pdf")


# ============================================
# MAIN APPLICATION
# ============================================

def main():
    """Main application entry point."""
    with st.sidebar:
        st.header("⚙️ Settings")
        st.session_state.api_url = st.text_input("API Server URL", value=get_api_url())

        user = st.session_state.get("user")
        if user:
            st.divider()
            st.markdown(f"**{user['name']} {user['surname']}**")
            st.caption(user["role"])
            if st.button("Logout"):
                st.session_state.pop("token", None)
                st.session_state.pop("user", None)
                st.rerun()

    user = st.session_state.get("user")
    if not user:
        render_login()
        return

    st.title(f"📋 Claims Portal · {user['role']}")
    if user["role"] == "Lecturer":
        render_lecturer()
    elif user["role"] in ("ProgrammeCoordinator", "AcademicManager"):
        render_reviewer()
    elif user["role"] == "HR":
        render_hr()


if __name__ == "__main__":
    main()
