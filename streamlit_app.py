"""Streamlit editor client for the ResumeForge API."""

import streamlit as st
import streamlit.components.v1 as components
import httpx
import os
import base64
import json
from typing import Any, Dict, Optional

# Configuration
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
ACCOUNT_HEADERS = {
    "X-Account-Id": os.getenv("RESUMEFORGE_ACCOUNT_ID", "local"),
    "X-Account-Name": os.getenv("RESUMEFORGE_ACCOUNT_NAME", ""),
    "X-Account-Email": os.getenv("RESUMEFORGE_ACCOUNT_EMAIL", ""),
}
GENERATION_TIMEOUT = 300.0

RESULT_TABS = [
    ("resumeAts", "ATS"),
    ("resumeHuman", "Human"),
    ("resumeTargeted", "Targeted"),
    ("resumePhoto", "With photo"),
    ("coverLetterFull", "Cover letter"),
    ("coverLetterShort", "Short letter"),
    ("coldEmail", "Cold email"),
]

# Page configuration
st.set_page_config(
    page_title="ResumeForge",
    page_icon="📄",
    layout="wide",
    initial_sidebar_state="expanded"
)


def empty_resume() -> Dict[str, Any]:
    """Blank editor state."""
    return {
        "targetRole": "",
        "jobDescription": "",
        "personalDetails": {},
        "experienceItems": [],
        "educationItems": [],
        "skillItems": [],
        "preferences": {"pages": "1-page", "tone": "modern", "region": "US", "photo": False},
        "profileImageData": None,
        "templateId": None,
    }


def call_api(method: str, path: str, timeout: float = 30.0, **kwargs) -> Optional[httpx.Response]:
    """
    Call the API with the account headers.

    Returns:
        The response if successful, None otherwise (the error is shown)
    """
    try:
        with httpx.Client(base_url=API_BASE_URL, timeout=timeout, headers=ACCOUNT_HEADERS) as client:
            response = client.request(method, path, **kwargs)
            response.raise_for_status()
            return response
    except httpx.HTTPStatusError as e:
        try:
            detail = e.response.json().get("detail")
        except ValueError:
            detail = e.response.text
        st.error(f"API error {e.response.status_code}: {detail}")
    except httpx.HTTPError as e:
        st.error(f"Could not reach the API: {str(e)}")
    return None


def load_templates() -> Dict[str, Any]:
    response = call_api("GET", "/api/v1/templates")
    if response is None:
        return {"defaultTemplateId": "classic_pro", "templates": []}
    return response.json()


def restore_draft(template_id: Optional[str]) -> None:
    """Seed the editor with the latest draft, unless something was imported."""
    params = {"templateId": template_id} if template_id else {}
    response = call_api("GET", "/api/v1/resume/latest-draft", params=params)
    if response is None or st.session_state.get("imported"):
        return
    draft = response.json().get("draft")
    if draft:
        st.session_state.resume = {**empty_resume(), **draft["content"]}
        st.toast("Restored your latest draft")


def save_draft() -> None:
    data = st.session_state.resume
    response = call_api(
        "POST", "/api/v1/resume/draft",
        json={"templateId": data.get("templateId"), "content": data}
    )
    if response is not None:
        st.toast("Draft saved")


def render_preview(data: Dict[str, Any]) -> None:
    response = call_api("POST", "/api/v1/resume/render", json={"data": data, "templateId": data.get("templateId")})
    if response is not None:
        st.caption(f"Template: {response.headers.get('X-Resume-Template')}")
        components.html(response.text, height=1100, scrolling=True)


def edit_items(label: str, key: str, fields: Dict[str, str]) -> None:
    """Editable list of items, one expander each."""
    items = st.session_state.resume[key]
    st.subheader(label)
    for index, item in enumerate(list(items)):
        with st.expander(item.get(next(iter(fields))) or f"{label} #{index + 1}"):
            for field, field_label in fields.items():
                if field == "description":
                    item[field] = st.text_area(field_label, item.get(field, ""), key=f"{key}-{index}-{field}")
                else:
                    item[field] = st.text_input(field_label, item.get(field, ""), key=f"{key}-{index}-{field}")
            if st.button("Remove", key=f"{key}-{index}-remove"):
                items.pop(index)
                st.rerun()
    if st.button(f"Add {label.lower()}", key=f"{key}-add"):
        items.append({field: "" for field in fields})
        st.rerun()


def editor_form(templates: Dict[str, Any]) -> None:
    data = st.session_state.resume
    details = data.setdefault("personalDetails", {})
    preferences = data.setdefault("preferences", {})

    template_ids = [t["id"] for t in templates["templates"]] or [templates["defaultTemplateId"]]
    names = {t["id"]: f'{t["name"]} ({t["tag"]})' for t in templates["templates"]}
    current = data.get("templateId") or templates["defaultTemplateId"]
    data["templateId"] = st.selectbox(
        "Template",
        template_ids,
        index=template_ids.index(current) if current in template_ids else 0,
        format_func=lambda template_id: names.get(template_id, template_id)
    )

    data["targetRole"] = st.text_input("Target role", data.get("targetRole", ""))
    data["jobDescription"] = st.text_area("Job description", data.get("jobDescription", ""), height=150)

    st.subheader("Personal details")
    col1, col2 = st.columns(2)
    details["firstName"] = col1.text_input("First name", details.get("firstName", ""))
    details["lastName"] = col2.text_input("Last name", details.get("lastName", ""))
    details["email"] = col1.text_input("Email", details.get("email", ""))
    details["phone"] = col2.text_input("Phone", details.get("phone", ""))
    details["address"] = st.text_input("Address", details.get("address", ""))
    col1, col2, col3 = st.columns(3)
    details["city"] = col1.text_input("City", details.get("city", ""))
    details["state"] = col2.text_input("State", details.get("state", ""))
    details["country"] = col3.text_input("Country", details.get("country", ""))
    details["summary"] = st.text_area("Summary", details.get("summary", ""))

    edit_items("Experience", "experienceItems", {
        "role": "Role", "company": "Company", "dates": "Dates", "description": "Description"
    })
    edit_items("Education", "educationItems", {"degree": "Degree", "school": "School", "dates": "Dates"})
    edit_items("Skills", "skillItems", {"category": "Category", "items": "Items (comma separated)"})

    st.subheader("Preferences")
    col1, col2, col3, col4 = st.columns(4)
    preferences["pages"] = col1.selectbox("Pages", ["1-page", "2-page"], index=0 if preferences.get("pages") != "2-page" else 1)
    tones = ["conservative", "modern", "bold"]
    preferences["tone"] = col2.selectbox("Tone", tones, index=tones.index(preferences.get("tone", "modern")))
    regions = ["US", "EU"]
    preferences["region"] = col3.selectbox("Region", regions, index=regions.index(preferences.get("region", "US")))
    preferences["photo"] = col4.checkbox("Photo", preferences.get("photo", False))

    photo = st.file_uploader("Profile photo", type=["png", "jpg", "jpeg"])
    if photo is not None:
        data["profileImageData"] = {
            "mimeType": photo.type,
            "data": base64.b64encode(photo.getvalue()).decode("utf-8"),
        }


def show_results(parsed: Dict[str, Any]) -> None:
    """Show the decoded sections; missing ones are skipped."""
    if parsed.get("gapAndFix"):
        st.subheader("Gaps and fixes")
        for line in parsed["gapAndFix"]:
            st.markdown(f"- {line}")

    available = [(key, label) for key, label in RESULT_TABS if parsed.get(key)]
    if available:
        tabs = st.tabs([label for _, label in available])
        for tab, (key, _) in zip(tabs, available):
            with tab:
                st.text_area(key, parsed[key], height=400, label_visibility="collapsed")

    if parsed.get("json") is not None:
        st.download_button(
            "📥 Download resume JSON",
            data=json.dumps(parsed["json"], indent=2),
            file_name="resume.json",
            mime="application/json"
        )
        title = st.text_input("Title", st.session_state.resume.get("targetRole") or "My resume")
        if st.button("💾 Save to library"):
            response = call_api("POST", "/api/v1/resumes", json={
                "templateId": st.session_state.resume.get("templateId") or "classic_pro",
                "title": title,
                "content": parsed,
            })
            if response is not None:
                st.success("Saved to your library")


def upload_view(data: Dict[str, Any]) -> None:
    """Import an existing resume into the editor."""
    upload = st.file_uploader("Existing resume (PDF or image)", type=["pdf", "png", "jpg", "jpeg"])
    resume_text = st.text_area("...or paste it as text", height=250)

    if st.button("📥 Import", type="primary"):
        body: Dict[str, Any] = {"data": data, "mode": "MODE_A"}
        if upload is not None:
            body["attachment"] = {
                "mimeType": upload.type,
                "data": base64.b64encode(upload.getvalue()).decode("utf-8"),
            }
        if resume_text.strip():
            body["resumeText"] = resume_text
        with st.spinner("⏳ Parsing your resume... This can take 30-60 seconds."):
            response = call_api("POST", "/api/v1/resume/import", timeout=GENERATION_TIMEOUT, json=body)
        if response is not None:
            result = response.json()
            st.session_state.resume = result["data"]
            st.session_state.imported = True
            st.session_state.parsed = result["parsed"]
            st.success("✅ Resume imported into the editor")


def cover_letter_view(data: Dict[str, Any]) -> None:
    job_description = st.text_area("Job description", data.get("jobDescription", ""), height=250)
    title = st.text_input("Title", "Cover Letter")
    if st.button("✉️ Generate cover letter", type="primary"):
        parsed = st.session_state.get("parsed") or {}
        with st.spinner("⏳ Writing your cover letter..."):
            response = call_api("POST", "/api/v1/cover-letter/generate", timeout=GENERATION_TIMEOUT, json={
                "jobDescription": job_description,
                "templateId": data.get("templateId"),
                "title": title,
                "resumeJson": parsed.get("json"),
            })
        if response is not None:
            letter = response.json()
            for key, label in (("coverLetterFull", "Cover letter"), ("coverLetterShort", "Short letter"), ("coldEmail", "Cold email")):
                st.subheader(label)
                st.text_area(label, letter.get(key, ""), height=300, label_visibility="collapsed", key=f"letter-{key}")


def main():
    """Main Streamlit app."""
    st.title("📄 ResumeForge")

    if "resume" not in st.session_state:
        st.session_state.resume = empty_resume()
        st.session_state.imported = False
        restore_draft(None)

    templates = load_templates()
    data = st.session_state.resume

    with st.sidebar:
        st.header("🔍 Server status")
        response = call_api("GET", "/health", timeout=2.0)
        if response is not None:
            st.success("✅ API is running")
        view = st.radio("View", ["Create", "Upload", "Cover letter"])

    if view == "Upload":
        upload_view(data)
        return
    if view == "Cover letter":
        cover_letter_view(data)
        return

    col_editor, col_preview = st.columns([1, 1])
    with col_editor:
        editor_form(templates)
        col1, col2, col3 = st.columns(3)
        if col1.button("🚀 Generate", type="primary", use_container_width=True):
            with st.spinner("⏳ Generating... This can take 30-60 seconds."):
                response = call_api(
                    "POST", "/api/v1/resume/generate", timeout=GENERATION_TIMEOUT,
                    json={"data": data, "mode": "MODE_B"}
                )
            if response is not None:
                st.session_state.parsed = response.json()
        if col2.button("💾 Save draft", use_container_width=True):
            save_draft()
        if col3.button("📄 Export PDF", use_container_width=True):
            response = call_api("POST", "/api/v1/resume/render/pdf", json={"data": data})
            if response is not None:
                st.download_button("📥 Download PDF", response.content, file_name="resume.pdf", mime="application/pdf")

    with col_preview:
        render_preview(data)

    if st.session_state.get("parsed"):
        st.divider()
        show_results(st.session_state.parsed)


if __name__ == "__main__":
    main()
