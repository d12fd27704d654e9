# Overview: Transactional email: OTP codes, order confirmation, status updates, admin messages.

"""
Email Service

Renders Jinja templates from templates/email/ and hands the result to an
SMTP relay configured in Config (SMTP_HOST/SMTP_PORT/SMTP_USER/...).

Every sender here is a side effect of some other operation. Failures are
logged and reported as False, never raised into the caller's transaction.

MAIL_SUPPRESS_SEND: messages are appended to app.extensions["mail_outbox"]
instead of being sent (development and tests).
MAIL_SEND_ASYNC: send_async() runs the sender on a daemon thread with its own
app context; when false it runs inline.
"""

from __future__ import annotations

import smtplib
import threading
from email.message import EmailMessage
from email.utils import formataddr

from flask import current_app, render_template

from ..extensions import db
from ..models import Order
from ..time_utils import utcnow, to_utc_z


STATUS_MESSAGES = {
    "confirmed": "Your order has been confirmed and is being prepared.",
    "processing": "Your order is currently being processed.",
    "shipped": "Great news! Your order has been shipped and is on its way.",
    "delivered": "Your order has been delivered successfully.",
    "cancelled": "Your order has been cancelled. If you have any questions, please contact us.",
}


def format_money(cents: int | None) -> str:
    """Minor units to a display string, e.g. 45000 -> '₹450.00'."""
    return f"₹{(cents or 0) / 100:,.2f}"


def get_outbox() -> list[EmailMessage]:
    return current_app.extensions.setdefault("mail_outbox", [])


def _build_message(*, to: str, subject: str, html: str, text: str | None = None) -> EmailMessage:
    config = current_app.config
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = formataddr((config.get("SHOP_NAME", "i1Fashion"), config["MAIL_DEFAULT_SENDER"]))
    msg["To"] = to
    msg.set_content(text or subject)
    msg.add_alternative(html, subtype="html")
    return msg


def deliver(msg: EmailMessage) -> None:
    """Send one message. Raises on SMTP failure; callers decide whether that matters."""
    config = current_app.config
    if config.get("MAIL_SUPPRESS_SEND"):
        get_outbox().append(msg)
        current_app.logger.info("Mail suppressed: to=%s subject=%s", msg["To"], msg["Subject"])
        return

    with smtplib.SMTP(config["SMTP_HOST"], config["SMTP_PORT"], timeout=10) as smtp:
        if config.get("SMTP_USE_TLS", True):
            smtp.starttls()
        if config.get("SMTP_USER"):
            smtp.login(config["SMTP_USER"], config["SMTP_PASSWORD"] or "")
        smtp.send_message(msg)
    current_app.logger.info("Mail sent: to=%s subject=%s", msg["To"], msg["Subject"])


def send_otp_email(email: str, otp: str) -> None:
    """Send a verification code. Raises on failure: the OTP route reports it."""
    shop = current_app.config.get("SHOP_NAME", "i1Fashion")
    ttl = current_app.config.get("OTP_TTL_MINUTES", 10)
    html = render_template("email/otp.html", otp=otp, email=email, ttl_minutes=ttl)
    deliver(_build_message(
        to=email,
        subject=f"Verify Your Email - {shop}",
        html=html,
        text=f"Your {shop} verification code is {otp}. It expires in {ttl} minutes.",
    ))


def send_order_confirmation_email(order: Order) -> bool:
    shop = current_app.config.get("SHOP_NAME", "i1Fashion")
    try:
        html = render_template("email/order_confirmation.html", order=order, items=order.items)
        deliver(_build_message(
            to=order.customer_email,
            subject=f"Order Confirmation - {order.order_number} | {shop}",
            html=html,
            text=f"Thank you for your order {order.order_number}. "
                 f"Total: {format_money(order.total_amount_cents)} (Cash on Delivery).",
        ))
        return True
    except Exception:
        current_app.logger.exception("Failed to send order confirmation email for %s", order.order_number)
        return False


def send_order_status_update_email(order: Order, new_status: str) -> bool:
    shop = current_app.config.get("SHOP_NAME", "i1Fashion")
    try:
        message = STATUS_MESSAGES.get(new_status, "Your order status has been updated.")
        html = render_template(
            "email/order_status.html",
            order=order,
            status=new_status,
            status_message=message,
        )
        deliver(_build_message(
            to=order.customer_email,
            subject=f"Order Update - {order.order_number} | {shop}",
            html=html,
            text=f"Order {order.order_number}: {new_status.capitalize()}. {message}",
        ))
        return True
    except Exception:
        current_app.logger.exception("Failed to send status update email for %s", order.order_number)
        return False


def send_generic_email(*, to: str, subject: str, message: str) -> dict:
    """Admin-composed message wrapped in the shop template. Raises on failure."""
    shop = current_app.config.get("SHOP_NAME", "i1Fashion")
    html = render_template("email/generic.html", subject=subject, message=message)
    deliver(_build_message(to=to, subject=f"[{shop}] {subject}", html=html, text=message))
    return {"to": to, "subject": subject, "sent_at": to_utc_z(utcnow())}


def send_async(sender, *args, **kwargs) -> threading.Thread | None:
    """
    Run a sender outside the request.

    The worker gets its own app context and database session, so pass ids
    rather than ORM objects (see queue_order_confirmation).
    """
    app = current_app._get_current_object()

    def _run():
        with app.app_context():
            try:
                sender(*args, **kwargs)
            except Exception:
                app.logger.exception("Background email task %s failed", getattr(sender, "__name__", sender))

    if not app.config.get("MAIL_SEND_ASYNC", True):
        _run()
        return None

    thread = threading.Thread(target=_run, name="mail-sender", daemon=True)
    thread.start()
    return thread


def _confirmation_for(order_id: int) -> None:
    order = db.session.get(Order, order_id)
    if order is not None:
        send_order_confirmation_email(order)


def _status_update_for(order_id: int, new_status: str) -> None:
    order = db.session.get(Order, order_id)
    if order is not None:
        send_order_status_update_email(order, new_status)


def queue_order_confirmation(order_id: int):
    return send_async(_confirmation_for, order_id)


def queue_status_update(order_id: int, new_status: str):
    return send_async(_status_update_for, order_id, new_status)
