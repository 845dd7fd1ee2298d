from checkledger.models.account import InternalAccountModel, UserModel  # noqa: F401
from checkledger.models.transaction import TransactionModel  # noqa: F401
