"""
Transactional email templates.

Each function returns (subject, html, text). User-supplied values are
escaped before they reach the HTML body.
"""

from __future__ import annotations

from html import escape

_WRAPPER_STYLE = "font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;"
_HEADING_STYLE = "color: #333; border-bottom: 1px solid #eee; padding-bottom: 10px;"
_FOOTER_STYLE = (
    "margin-top: 30px; padding-top: 15px; border-top: 1px solid #eee; "
    "font-size: 12px; color: #777;"
)
_BUTTON_STYLE = (
    "background-color: #7c3aed; color: white; padding: 12px 24px; text-decoration: none; "
    "border-radius: 4px; display: inline-block; font-weight: bold;"
)

RenderedEmail = tuple[str, str, str]


def _greeting(name: str | None) -> str:
    return name or "there"


def _page(heading: str, body: str, footer: str) -> str:
    return (
        f'<div style="{_WRAPPER_STYLE}">'
        f'<h2 style="{_HEADING_STYLE}">{heading}</h2>'
        f"{body}"
        f'<div style="{_FOOTER_STYLE}">{footer}</div>'
        "</div>"
    )


def confirmation_email(name: str | None, confirmation_url: str, site_name: str) -> RenderedEmail:
    subject = "Confirm Your Newsletter Subscription"
    greeting = escape(_greeting(name))
    url = escape(confirmation_url, quote=True)

    html = _page(
        "Confirm Your Subscription",
        f'<div style="margin: 20px 0;"><p>Hello {greeting},</p>'
        f"<p>Thank you for subscribing to the {escape(site_name)} newsletter! "
        "To complete your subscription, please click the button below:</p></div>"
        f'<div style="text-align: center; margin: 30px 0;">'
        f'<a href="{url}" style="{_BUTTON_STYLE}">Confirm Subscription</a></div>'
        "<p>If the button doesn't work, copy and paste this link into your browser:</p>"
        f'<p style="word-break: break-all; color: #5b21b6;">{url}</p>',
        "<p>If you didn't request this subscription, you can safely ignore this email.</p>",
    )
    text = (
        "Confirm Your Subscription\n\n"
        f"Hello {_greeting(name)},\n\n"
        f"Thank you for subscribing to the {site_name} newsletter! "
        "To complete your subscription, please visit the following link:\n\n"
        f"{confirmation_url}\n\n"
        "If you didn't request this subscription, you can safely ignore this email.\n"
    )
    return subject, html, text


def welcome_email(name: str | None, manage_url: str, site_name: str) -> RenderedEmail:
    subject = f"Welcome to the {site_name} Newsletter!"
    greeting = escape(_greeting(name))
    url = escape(manage_url, quote=True)
    topics = [
        "New projects",
        "Skills and technologies",
        "Career updates",
        "Certificates and qualifications",
    ]

    items = "".join(f"<li>{t}</li>" for t in topics)
    html = _page(
        f"Welcome to the {escape(site_name)} Newsletter!",
        f'<div style="margin: 20px 0;"><p>Hello {greeting},</p>'
        "<p>Thank you for confirming your subscription! You'll now receive updates about:</p>"
        f'<ul style="margin-top: 10px;">{items}</ul></div>'
        '<div style="background-color: #f9f9f9; padding: 15px; border-radius: 5px; margin: 20px 0;">'
        "<p>You can manage your preferences or unsubscribe at any time by visiting:</p>"
        f'<p style="word-break: break-all;"><a href="{url}" style="color: #5b21b6;">{url}</a></p>'
        "</div>",
        f"<p>Best regards,</p><p>{escape(site_name)}</p>",
    )
    bullet_list = "\n".join(f"- {t}" for t in topics)
    text = (
        f"Welcome to the {site_name} Newsletter!\n\n"
        f"Hello {_greeting(name)},\n\n"
        "Thank you for confirming your subscription! You'll now receive updates about:\n\n"
        f"{bullet_list}\n\n"
        "You can manage your preferences or unsubscribe at any time by visiting:\n"
        f"{manage_url}\n"
    )
    return subject, html, text


def manage_link_email(name: str | None, manage_url: str, site_name: str) -> RenderedEmail:
    subject = f"Your {site_name} Newsletter Subscription"
    greeting = escape(_greeting(name))
    url = escape(manage_url, quote=True)

    html = _page(
        "Manage Your Subscription",
        f'<div style="margin: 20px 0;"><p>Hello {greeting},</p>'
        f"<p>You're already subscribed to the {escape(site_name)} newsletter. "
        "Your previous subscription link has expired, so here is a new one:</p></div>"
        f'<div style="text-align: center; margin: 30px 0;">'
        f'<a href="{url}" style="{_BUTTON_STYLE}">Manage Subscription</a></div>'
        "<p>If the button doesn't work, copy and paste this link into your browser:</p>"
        f'<p style="word-break: break-all; color: #5b21b6;">{url}</p>',
        "<p>Older subscription links no longer work.</p>",
    )
    text = (
        "Manage Your Subscription\n\n"
        f"Hello {_greeting(name)},\n\n"
        f"You're already subscribed to the {site_name} newsletter. "
        "Your previous subscription link has expired, so here is a new one:\n\n"
        f"{manage_url}\n\n"
        "Older subscription links no longer work.\n"
    )
    return subject, html, text


def unsubscribe_email(name: str | None, site_name: str) -> RenderedEmail:
    subject = "You've Been Unsubscribed"
    greeting = escape(_greeting(name))

    html = _page(
        "Unsubscribe Confirmation",
        f'<div style="margin: 20px 0;"><p>Hello {greeting},</p>'
        f"<p>You have been unsubscribed from the {escape(site_name)} newsletter. "
        "You will no longer receive newsletter emails.</p>"
        "<p>If you unsubscribed by mistake, you can subscribe again on the website.</p></div>",
        f"<p>Best regards,</p><p>{escape(site_name)}</p>",
    )
    text = (
        "Unsubscribe Confirmation\n\n"
        f"Hello {_greeting(name)},\n\n"
        f"You have been unsubscribed from the {site_name} newsletter. "
        "You will no longer receive newsletter emails.\n\n"
        "If you unsubscribed by mistake, you can subscribe again on the website.\n"
    )
    return subject, html, text


def smtp_check_email(site_name: str) -> RenderedEmail:
    subject = f"Test Email from {site_name}"
    html = _page(
        "Test Email",
        '<div style="margin: 20px 0;">'
        f"<p>This is a test email from {escape(site_name)}.</p>"
        "<p>If you received this email, your email settings are working correctly.</p></div>",
        "<p>This is an automated test email.</p>",
    )
    text = (
        "Test Email\n\n"
        f"This is a test email from {site_name}.\n"
        "If you received this email, your email settings are working correctly.\n"
    )
    return subject, html, text
