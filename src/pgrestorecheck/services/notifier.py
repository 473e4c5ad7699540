"""Operator notifications for pgrestorecheck."""

import smtplib
from email.message import EmailMessage
from typing import Optional

from pgrestorecheck.errors import ConfigError, RestoreCheckError


class Notifier:
    """Sends one plain-text mail per call. Delivery is never retried."""

    TRANSPORTS = ("mailx", "smtp")

    def __init__(self, run_context, command_runner, run_log, logger, smtp_factory=smtplib.SMTP):
        if run_context.mail_transport not in self.TRANSPORTS:
            raise ConfigError(f"Unsupported mail transport: {run_context.mail_transport}")
        self.run_context = run_context
        self.command_runner = command_runner
        self.run_log = run_log
        self.logger = logger
        self.smtp_factory = smtp_factory
        self.sent = []

    @property
    def subject(self) -> str:
        return f"{self.run_context.hostname}: pgdump_check status"

    def format_body(self, message: str) -> str:
        return f"{self.run_context.hostname}: {message}"

    def notify(self, message: str) -> bool:
        if not self.run_context.send_mail:
            self.logger.debug("Mail disabled, not sending: %s", message)
            return False

        body = self.format_body(message)
        try:
            if self.run_context.mail_transport == "smtp":
                self._send_smtp(body)
            else:
                self._send_mailx(body)
        except (RestoreCheckError, OSError, smtplib.SMTPException) as exc:
            self.run_log.warning(f"could not send notification to {self.run_context.recipient}: {exc}")
            return False

        self.sent.append(body)
        return True

    def _send_mailx(self, body: str):
        self.command_runner.run(
            ["mailx", "-s", self.subject, str(self.run_context.recipient)],
            check=True,
            capture_output=True,
            input_text=body + "\n",
        )

    def _send_smtp(self, body: str):
        msg = EmailMessage()
        msg["Subject"] = self.subject
        msg["From"] = self._sender()
        msg["To"] = str(self.run_context.recipient)
        msg.set_content(body)

        with self.smtp_factory(self.run_context.smtp_host, self.run_context.smtp_port) as server:
            server.send_message(msg)

    def _sender(self) -> str:
        sender: Optional[str] = self.run_context.mail_sender
        return sender or f"pgrestorecheck@{self.run_context.hostname}"
