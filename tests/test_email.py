# tests/test_email.py
"""Tests for the booking confirmation email"""

from datetime import datetime
from unittest.mock import patch

import pytest

from salon_api import email_service
from salon_api.email_service import EmailError, send_booking_confirmation, send_email
from salon_api.email_templates import booking_confirmation_template

START = datetime(2030, 1, 8, 14, 30)


class TestBookingConfirmationTemplate:

    def test_content(self):
        mjml = booking_confirmation_template(
            name="Jane",
            treatment_name="Gel Manicure",
            price=45.0,
            appointment_start=START,
            business_name="Diva Salon",
        )

        assert mjml.strip().startswith("<mjml>")
        assert "Hi Jane," in mjml
        assert "Thanks for submitting your booking request to Diva Salon." in mjml
        assert "Gel Manicure - £45.00" in mjml
        assert "Tuesday 08 January 2030 at 14:30" in mjml
        assert "The Diva Salon Team" in mjml
        assert "Message:" not in mjml

    def test_message_included_and_escaped(self):
        mjml = booking_confirmation_template(
            name="<b>Jane</b>",
            treatment_name="Cut",
            price=None,
            appointment_start=START,
            message="Running late? <script>",
        )

        assert "Message: Running late? &lt;script&gt;" in mjml
        assert "Hi &lt;b&gt;Jane&lt;/b&gt;," in mjml
        assert "£" not in mjml


class TestSendEmail:

    @pytest.mark.asyncio
    async def test_not_configured(self):
        with patch.object(email_service, "RESEND_API_KEY", None), patch.object(
            email_service, "mjml_to_html", return_value={"html": "<html></html>", "errors": []}
        ):
            with pytest.raises(EmailError, match="not configured"):
                await send_email("jane@example.com", "Hello", "<mjml></mjml>")

    @pytest.mark.asyncio
    async def test_sends_compiled_html(self):
        with patch.object(email_service, "RESEND_API_KEY", "re_test"), patch.object(
            email_service, "mjml_to_html", return_value={"html": "<html>hi</html>", "errors": []}
        ), patch.object(email_service.resend.Emails, "send", return_value={"id": "em_1"}) as send:
            result = await send_email("jane@example.com", "Hello", "<mjml></mjml>", from_address="a@b.c")

        assert result == {"id": "em_1"}
        payload = send.call_args.args[0]
        assert payload == {
            "from": "a@b.c",
            "to": ["jane@example.com"],
            "subject": "Hello",
            "html": "<html>hi</html>",
        }

    @pytest.mark.asyncio
    async def test_provider_failure_raises(self):
        with patch.object(email_service, "RESEND_API_KEY", "re_test"), patch.object(
            email_service, "mjml_to_html", return_value={"html": "<html></html>", "errors": []}
        ), patch.object(email_service.resend.Emails, "send", side_effect=RuntimeError("rate limited")):
            with pytest.raises(EmailError, match="rate limited"):
                await send_email("jane@example.com", "Hello", "<mjml></mjml>")

    @pytest.mark.asyncio
    async def test_booking_confirmation_subject(self):
        with patch.object(email_service, "RESEND_API_KEY", "re_test"), patch.object(
            email_service, "mjml_to_html", return_value={"html": "<html></html>", "errors": []}
        ) as compile_mjml, patch.object(email_service.resend.Emails, "send", return_value={"id": "em_2"}) as send:
            await send_booking_confirmation(
                to="jane@example.com",
                name="Jane",
                treatment_name="Gel Manicure",
                price=45.0,
                appointment_start=START,
            )

        assert send.call_args.args[0]["subject"] == "New Booking Created"
        assert "Gel Manicure - £45.00" in compile_mjml.call_args.args[0]
