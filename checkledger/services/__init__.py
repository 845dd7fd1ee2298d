"""
Outbound collaborators (recognition providers, downstream deposit API) and
the ledger write path.
"""
from checkledger.services.forwarder import DepositForwarder
from checkledger.services.recognition import RecognitionClient


def get_recognition_client():
    """Recognition client dependency"""
    client = RecognitionClient()
    try:
        yield client
    finally:
        client.close()


def get_deposit_forwarder():
    """Deposit forwarder dependency"""
    forwarder = DepositForwarder()
    try:
        yield forwarder
    finally:
        forwarder.close()
