"""
Service d'envoi d'emails SMTP.
Utilisé pour les rappels envoyés aux apprenants avant le début d'une séance.
"""

import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from programtrack.config import settings

logger = logging.getLogger(__name__)


def send_session_reminder_email(
    to_email: str,
    trainee_name: str,
    session_title: str,
    start_time: datetime,
    session_link: str,
) -> None:
    """
    Envoie un email HTML de rappel pour une séance à venir.
    Lève une exception en cas d'échec SMTP.
    """
    start_label = start_time.strftime("%d/%m/%Y à %H:%M")

    msg = MIMEMultipart("alternative")
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = f"ProgramTrack : rappel, « {session_title} » commence bientôt"

    text_content = (
        f"Bonjour {trainee_name},\n\n"
        f"La séance « {session_title} » commence le {start_label} (UTC).\n"
        f"Pointez votre présence ici : {session_link}\n"
    )
    html_content = f"""
    <html>
      <body style="font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: auto;">
        <h2 style="color: #1a73e8;">ProgramTrack : rappel de séance</h2>
        <p>Bonjour {trainee_name},</p>
        <p>
          La séance <strong>{session_title}</strong> commence le
          <strong>{start_label}</strong> (UTC).
        </p>
        <p style="text-align: center; margin: 24px 0;">
          <a href="{session_link}" style="background: #1a73e8; color: #fff; padding: 10px 18px;
             border-radius: 4px; text-decoration: none;">Rejoindre la séance</a>
        </p>
        <hr style="border: none; border-top: 1px solid #eee;" />
        <p style="font-size: 12px; color: #888;">
          Ce message est généré automatiquement par ProgramTrack. Ne pas répondre à cet email.
        </p>
      </body>
    </html>
    """

    msg.attach(MIMEText(text_content, "plain", "utf-8"))
    msg.attach(MIMEText(html_content, "html", "utf-8"))

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        if settings.SMTP_USE_TLS:
            server.starttls()
        if settings.SMTP_USERNAME:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)

    logger.info("Rappel de séance envoyé à %s pour « %s »", to_email, session_title)
