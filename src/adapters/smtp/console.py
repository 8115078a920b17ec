"""
Console email sender - log-backed EmailSender for development.

Both message kinds are written as a single INFO record tagged with the
message kind, so operators (and integration tests) can pick codes out of
the application log instead of a mailbox.
"""

import logging

logger = logging.getLogger(__name__)

VERIFICATION_TAG = "VERIFICATION"
RECOVERY_TAG = "RECOVERY"


class ConsoleEmailSender:
    """
    EmailSender that delivers to the log.

    Satisfies the port structurally. Swap for a real SMTP adapter in
    deployments that send mail.
    """

    def _deliver(self, tag: str, email: str, body: str, *args: object) -> None:
        logger.info("[%s] Email: %s " + body, tag, email, *args)

    def send_verification_code(self, email: str, code: str) -> None:
        """
        Deliver the step 2 contact verification code.

        Args:
            email: Normalized applicant email
            code: 6-digit code stored on the pending applicant
        """
        self._deliver(VERIFICATION_TAG, email, "Code: %s", code)

    def send_recovery_code(self, email: str, code: str, expires_in_minutes: int) -> None:
        self._deliver(
            RECOVERY_TAG, email, "Code: %s Expires in: %d minutes", code, expires_in_minutes
        )
