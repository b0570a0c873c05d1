"""
voice_token_service.signing

Token signing package.

Responsibilities:
- Twilio Access Token signer.
- Message protocol, workers, and the round-robin worker pool that runs the signer.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing in here touches HTTP; the service layer is the only caller of the pool.
