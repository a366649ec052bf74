"""
Toolkit - Delivery-facing utilities & services.

This app provides the pieces the notification pipeline talks to at its
edges:
- EmailService: Django email sending with template rendering
- Protocols: Collaborator interfaces (EmailGateway, UserResolver, PreferenceGateway)
- Helpers: PII masking for log lines

Key components:
    - services/email.py: EmailService class
    - protocols.py: Collaborator interfaces
    - helpers.py: mask_email

Note:
    - This app has no models.
    - For generic infrastructure (base model, services, exceptions), see core/
"""
