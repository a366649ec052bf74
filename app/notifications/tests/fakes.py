"""
Test doubles for the notification pipeline.
"""


class RecordingGateway:
    """
    EmailGateway double that records every send.

    Attributes:
        sent: [(job_type, payload), ...] in call order
        result: Value returned from send()
        error: If set, raised from send() instead
    """

    def __init__(self, result=True, error=None):
        self.sent = []
        self.result = result
        self.error = error

    def send(self, job_type, payload):
        self.sent.append((job_type, payload))
        if self.error is not None:
            raise self.error
        return self.result

    @property
    def job_types(self):
        return [job_type for job_type, _ in self.sent]
