"""
Receipt Service
Renders the payment confirmation email and delivers it over SMTP.
"""
import smtplib
from datetime import datetime
from email.message import EmailMessage
from html import escape
from string import Template
from typing import Optional

from starlette.concurrency import run_in_threadpool

from feeledger.config import settings
from feeledger.exceptions import ReceiptDeliveryError
from feeledger.logging_config import get_logger
from feeledger.schemas.receipt import ReceiptTransaction

logger = get_logger(__name__)

RECEIPT_TEMPLATE = Template("""
<html>
  <head>
    <style>
      body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; background-color: #f8f9fa; margin: 0; padding: 20px; }
      .email-container { background-color: #ffffff; padding: 30px; border-radius: 8px; max-width: 650px; margin: auto; border: 1px solid #e0e0e0; }
      .header { text-align: center; margin-bottom: 30px; }
      .header h1 { color: #004085; margin: 0; font-size: 24px; }
      .info-table { width: 100%; border-collapse: collapse; margin-bottom: 20px; }
      .info-table td { padding: 10px 5px; border-bottom: 1px solid #ddd; font-size: 16px; }
      .info-table td.label { font-weight: bold; color: #333; width: 40%; }
      .footer { margin-top: 30px; text-align: center; font-size: 14px; color: #666; }
      .button { display: inline-block; margin-top: 15px; padding: 10px 20px; background-color: #007bff; color: #ffffff; text-decoration: none; border-radius: 5px; font-weight: bold; }
    </style>
  </head>
  <body>
    <div class="email-container">
      <div class="header"><h1>Payment Confirmation</h1></div>
      <p>Dear $sender_name,</p>
      <p>We acknowledge the receipt of your payment. Below are your transaction details:</p>
      <table class="info-table">
        <tr><td class="label">Confirmation of Receipt For:</td><td>$sender_name</td></tr>
        <tr><td class="label">Paid By:</td><td>$sender_name</td></tr>
        <tr><td class="label">Phone Number:</td><td>$phone_number</td></tr>
        <tr><td class="label">Account Reference:</td><td>$account_name</td></tr>
        <tr><td class="label">Transaction Date:</td><td>$transaction_date $transaction_time</td></tr>
        <tr><td class="label">Amount Paid:</td><td>KES $amount</td></tr>
        <tr><td class="label">Transaction ID:</td><td>$transaction_id</td></tr>
        <tr><td class="label">Printed At:</td><td>$printed_at</td></tr>
      </table>
      <div style="text-align: center;">
        <a href="$portal_url" class="button">Access Your Receipt</a>
      </div>
      <div class="footer">
        <p>Thank you for choosing $school_name. For any inquiries, please visit our website or contact support.</p>
      </div>
    </div>
  </body>
</html>
""")


def render_receipt_html(transaction: ReceiptTransaction, printed_at: Optional[datetime] = None) -> str:
    """Fill the receipt template; every value is HTML-escaped"""
    printed_at = printed_at or datetime.now()
    values = {
        key: escape(value or "")
        for key, value in transaction.model_dump().items()
    }
    values.update(
        printed_at=escape(printed_at.strftime("%d/%m/%Y, %H:%M:%S")),
        portal_url=escape(settings.RECEIPT_PORTAL_URL, quote=True),
        school_name=escape(settings.SCHOOL_NAME),
    )
    return RECEIPT_TEMPLATE.substitute(values)


class ReceiptMailer:
    """Sends receipt emails through the configured SMTP server"""

    def __init__(
        self,
        host: str = None,
        port: int = None,
        username: str = None,
        password: str = None,
        use_starttls: bool = None,
        timeout: float = None,
    ):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.username = username if username is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.use_starttls = settings.SMTP_STARTTLS if use_starttls is None else use_starttls
        self.timeout = timeout or settings.SMTP_TIMEOUT

    def build_message(self, transaction: ReceiptTransaction) -> EmailMessage:
        message = EmailMessage()
        message["From"] = settings.RECEIPT_FROM_ADDRESS
        message["To"] = settings.RECEIPT_TO_ADDRESS
        message["Subject"] = settings.RECEIPT_SUBJECT
        message.set_content("Your payment has been received. View this email in an HTML-capable client for details.")
        message.add_alternative(render_receipt_html(transaction), subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_starttls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)

    async def send_receipt(self, transaction: ReceiptTransaction) -> None:
        """
        Send the payment confirmation for a transaction.

        Raises:
            ReceiptDeliveryError: If the SMTP server rejects or cannot be reached.
        """
        message = self.build_message(transaction)
        try:
            await run_in_threadpool(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending receipt for {transaction.transaction_id}: {e}")
            raise ReceiptDeliveryError() from e
        logger.info(f"Receipt sent for transaction {transaction.transaction_id} to {message['To']}")
