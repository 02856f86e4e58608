"""
HTML email templates for deadline reminders.

Every template returns a complete HTML document. Values are escaped here,
callers pass plain strings.
"""

from html import escape
from typing import Optional

THEME = {
    "background": "#000000",
    "card": "#0a0a0a",
    "border": "rgba(255,255,255,0.1)",
    "text": "#d4d4d8",
    "heading": "#ffffff",
    "muted": "#71717a",
    "faint": "#52525b",
}

APP_NAME = "College Application Tracker"


def _plural(n: int, word: str = "day") -> str:
    return f"{n} {word}{'s' if n != 1 else ''}"


def _button(href: str, label: str) -> str:
    return f"""
      <div style="margin: 40px 0; text-align: center;">
        <a href="{escape(href)}" style="display: inline-block; background: #ffffff; color: #000000; padding: 14px 32px; text-decoration: none; border-radius: 8px; font-weight: 600; font-size: 15px;">{escape(label)}</a>
      </div>"""


def _panel(caption: str, value: str, note: Optional[str] = None) -> str:
    note_html = f'<p style="margin: 4px 0 0 0; font-size: 14px; color: {THEME["muted"]};">{note}</p>' if note else ""
    return f"""
      <div style="padding: 24px; border-radius: 12px; border: 1px solid {THEME['border']}; margin-bottom: 20px; border-left: 4px solid #ffffff;">
        <p style="margin: 0; font-size: 12px; text-transform: uppercase; letter-spacing: 0.05em; color: {THEME['muted']};">{caption}</p>
        <p style="margin: 6px 0 0 0; font-size: 20px; font-weight: 600; color: #fafafa;">{value}</p>
        {note_html}
      </div>"""


def base_template(title: str, intro_html: str, body_html: str, footer_html: str) -> str:
    return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape(title)}</title>
  </head>
  <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: {THEME['text']}; max-width: 600px; margin: 0 auto; padding: 20px; background-color: {THEME['background']};">
    <div style="background: {THEME['card']}; padding: 40px 30px; border-radius: 16px; border: 1px solid {THEME['border']};">
      <div style="text-align: center; margin-bottom: 40px;">
        <h1 style="color: {THEME['heading']}; margin: 0; font-size: 28px; font-weight: 700;">{escape(title)}</h1>
      </div>
      <div style="text-align: center; margin-bottom: 40px;">
        <p style="font-size: 17px; margin: 0;">{intro_html}</p>
      </div>
      {body_html}
      <div style="margin-top: 50px; padding-top: 30px; border-top: 1px solid {THEME['border']}; text-align: center;">
        <p style="font-size: 12px; color: {THEME['faint']}; margin-bottom: 12px;">This email was sent from {APP_NAME}</p>
        {footer_html}
      </div>
    </div>
  </body>
</html>
"""


def reminder_template(
    deadline_title: str,
    institution_name: str,
    deadline_date: str,
    days_until: int,
    unsubscribe_url: str,
    dashboard_url: str,
    institution_website: Optional[str] = None,
) -> str:
    intro = (
        f'This is a reminder that <strong style="color: #ffffff;">{escape(deadline_title)}</strong> '
        f"for <strong>{escape(institution_name)}</strong> is due in "
        f'<strong style="color: #ffffff;">{_plural(days_until)}</strong>.'
    )
    body = _panel("Deadline Date", escape(deadline_date))
    if institution_website:
        body += _button(institution_website, "Visit Institution Website")
    body += f'<p style="font-size: 14px; color: {THEME["muted"]}; text-align: center;">Don\'t forget to submit your application on time! Good luck!</p>'
    footer = (
        f'<p style="font-size: 11px; color: {THEME["faint"]};">'
        f'<a href="{escape(unsubscribe_url)}" style="color: {THEME["muted"]};">Unsubscribe from this reminder</a> | '
        f'<a href="{escape(dashboard_url)}" style="color: {THEME["muted"]};">Manage all reminders</a></p>'
    )
    return base_template("Application Deadline Reminder", intro, body, footer)


def confirmation_template(
    deadline_title: str,
    institution_name: str,
    deadline_date: str,
    reminder_date: str,
    reminder_days_before: int,
    unsubscribe_all_url: str,
    dashboard_url: str,
    institution_website: Optional[str] = None,
) -> str:
    intro = (
        "Your email reminder has been successfully scheduled for "
        f'<strong style="color: #ffffff;">{escape(deadline_title)}</strong> at '
        f"<strong>{escape(institution_name)}</strong>."
    )
    body = _panel(
        "You'll receive a reminder on",
        escape(reminder_date),
        note=f"({_plural(reminder_days_before)} before the deadline)",
    )
    body += _panel("Application Deadline", escape(deadline_date))
    if institution_website:
        body += _button(institution_website, "Visit Institution Website")
    body += (
        f'<p style="font-size: 14px; color: {THEME["muted"]}; text-align: center;">'
        f"We'll send you a reminder email {_plural(reminder_days_before)} before the deadline "
        "to help you stay on track!</p>"
    )
    footer = (
        f'<p style="font-size: 11px; color: {THEME["faint"]};">You can manage your reminders in your '
        f'<a href="{escape(dashboard_url)}" style="color: {THEME["muted"]};">dashboard</a> or '
        f'<a href="{escape(unsubscribe_all_url)}" style="color: {THEME["muted"]};">unsubscribe from all reminders</a></p>'
    )
    return base_template("Reminder Scheduled", intro, body, footer)


def unsubscribe_template(dashboard_url: str, deadline_title: Optional[str] = None, all_reminders: bool = False) -> str:
    if all_reminders:
        what = "all email reminders"
        caption = "All reminders have been disabled"
        scope = "for any deadline reminders."
    else:
        what = f'reminders for <strong style="color: #ffffff;">{escape(deadline_title or "this deadline")}</strong>'
        caption = "This reminder has been disabled"
        scope = "for this deadline."
    intro = f"You have successfully unsubscribed from {what}."
    body = _panel(caption, f"You will no longer receive email notifications {scope}")
    body += _button(dashboard_url, "Manage Reminders in Dashboard")
    body += (
        f'<p style="font-size: 14px; color: {THEME["muted"]}; text-align: center;">'
        "You can always re-enable reminders from your dashboard.</p>"
    )
    return base_template("Unsubscribed", intro, body, "")
