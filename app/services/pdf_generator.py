"""Service for exporting rendered resumes to PDF."""

from app.models.resume_models import AccountIdentity, ResumeData
from app.services.template_renderer import TemplateRenderer


class PDFGenerator:
    """Service to generate PDF from the rendered HTML using WeasyPrint."""

    def __init__(self, renderer: TemplateRenderer = None):
        """
        Initialize the PDF generator.

        Args:
            renderer: Template renderer instance. If None, creates a new one.
        """
        if renderer is None:
            renderer = TemplateRenderer()
        self.renderer = renderer

    def generate_pdf(self, data: ResumeData, template_id: str, account: AccountIdentity) -> bytes:
        """
        Generate a PDF of exactly the HTML shown in the live preview.

        Args:
            data: Resume data
            template_id: Requested template id (unknown ids use the default layout)
            account: Signed-in account

        Returns:
            bytes: PDF file as bytes
        """
        html_content = self.renderer.render(data, template_id, account)
        return self.html_to_pdf(html_content)

    def html_to_pdf(self, html_content: str) -> bytes:
        """Convert an HTML document to PDF bytes (A4, portrait)."""
        # WeasyPrint loads native libraries on import
        from weasyprint import HTML as WeasyHTML, CSS

        html = WeasyHTML(string=html_content)
        page_css = CSS(string="""
            @page {
                size: A4;
                margin: 0;
            }
        """)
        return html.write_pdf(stylesheets=[page_css])
