"""
Notifications app: in-app messages with deferred email delivery.

This app provides:
- Message, UserEmailPreference and MessageBroadcast models
- MessageDispatcher, which writes in-app messages and schedules emails
- A per-request DeferredJobQueue flushed after the response is sent,
  with a detached worker process and a synchronous fallback
- REST API for the inbox, email preferences and admin broadcasts

Usage:
    from notifications.dispatcher import get_dispatcher

    dispatcher = get_dispatcher()
    message = dispatcher.notify(user.id, "Hi", "body", "system", "high")
"""
