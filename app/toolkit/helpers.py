"""
Helper functions for PII-safe logging.

Functions:
    mask_email: Mask an email address for log output

Usage:
    from toolkit.helpers import mask_email

    logger.info(f"Queued email for {mask_email(address)}")
"""


def mask_email(email: str | None) -> str:
    """
    Mask email for display.

    Keeps first character and domain visible.

    Example:
        mask_email("john.doe@example.com")  # "j***@example.com"
    """
    if not email or "@" not in email:
        return "***"

    local, domain = email.rsplit("@", 1)

    if len(local) > 1:
        masked_local = local[0] + "***"
    else:
        masked_local = "***"

    return f"{masked_local}@{domain}"
