"""ORM models for the ballot kernel.

Importing this package registers every table on ``Base.metadata``.
"""

from ballot_kernel.models.ballot_receipt import BallotReceipt
from ballot_kernel.models.election import Election
from ballot_kernel.models.notification import NotificationRecord
from ballot_kernel.models.proposal import Proposal
from ballot_kernel.models.voter import Voter

__all__ = [
    "BallotReceipt",
    "Election",
    "NotificationRecord",
    "Proposal",
    "Voter",
]
