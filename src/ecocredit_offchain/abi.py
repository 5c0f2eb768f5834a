"""
MicroCredit contract ABI

Interface of the deployed Solidity contract, used by the web3 backend.
"""


def _params(*pairs):
    return [{"name": name, "type": typ, "internalType": typ} for name, typ in pairs]


def _function(name, inputs=(), outputs=(), mutability="nonpayable"):
    return {
        "type": "function",
        "name": name,
        "inputs": _params(*inputs),
        "outputs": _params(*outputs),
        "stateMutability": mutability,
    }


def _event(name, *inputs):
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [
            {"name": arg, "type": typ, "internalType": typ, "indexed": indexed} for arg, typ, indexed in inputs
        ],
    }


PROJECT_FIELDS = (
    ("projectId", "string"),
    ("methodology", "string"),
    ("location", "string"),
    ("totalCredits", "uint256"),
    ("availableCredits", "uint256"),
    ("isActive", "bool"),
    ("developer", "address"),
    ("pricePerCredit", "uint256"),
)

MICRO_CREDIT_ABI = [
    # Transactions
    _function(
        "registerProject",
        inputs=(
            ("projectId", "string"),
            ("developer", "address"),
            ("methodology", "string"),
            ("location", "string"),
            ("totalCredits", "uint256"),
            ("pricePerCredit", "uint256"),
        ),
    ),
    _function("mint", inputs=(("to", "address"), ("amount", "uint256"), ("projectId", "string"))),
    _function("purchaseCredits", inputs=(("projectId", "string"), ("amount", "uint256")), mutability="payable"),
    _function("retire", inputs=(("amount", "uint256"), ("reason", "string"))),
    _function("transfer", inputs=(("to", "address"), ("amount", "uint256")), outputs=(("", "bool"),)),
    _function("updateProjectPrice", inputs=(("projectId", "string"), ("newPrice", "uint256"))),
    _function("pause"),
    _function("unpause"),
    # Queries
    _function("getProject", inputs=(("projectId", "string"),), outputs=PROJECT_FIELDS, mutability="view"),
    _function("getProjectIds", outputs=(("", "string[]"),), mutability="view"),
    _function("balanceOf", inputs=(("account", "address"),), outputs=(("", "uint256"),), mutability="view"),
    _function("getRetiredBalance", inputs=(("account", "address"),), outputs=(("", "uint256"),), mutability="view"),
    _function(
        "getPlatformStats",
        outputs=(("totalSupply", "uint256"), ("totalRetired", "uint256"), ("activeProjects", "uint256")),
        mutability="view",
    ),
    _function("totalSupply", outputs=(("", "uint256"),), mutability="view"),
    _function("paused", outputs=(("", "bool"),), mutability="view"),
    _function("owner", outputs=(("", "address"),), mutability="view"),
    _function("name", outputs=(("", "string"),), mutability="view"),
    _function("symbol", outputs=(("", "string"),), mutability="view"),
    _function("decimals", outputs=(("", "uint8"),), mutability="view"),
    _function("MAX_SUPPLY", outputs=(("", "uint256"),), mutability="view"),
    # Events
    _event("Transfer", ("from", "address", True), ("to", "address", True), ("value", "uint256", False)),
    _event(
        "ProjectRegistered",
        ("projectId", "string", False),
        ("developer", "address", True),
        ("totalCredits", "uint256", False),
    ),
    _event("CreditsMinted", ("to", "address", True), ("amount", "uint256", False), ("projectId", "string", False)),
    _event(
        "CreditsPurchased",
        ("buyer", "address", True),
        ("projectId", "string", False),
        ("amount", "uint256", False),
        ("totalPrice", "uint256", False),
    ),
    _event(
        "CreditsRetired",
        ("account", "address", True),
        ("amount", "uint256", False),
        ("reason", "string", False),
        ("timestamp", "uint256", False),
    ),
    _event(
        "ProjectPriceUpdated",
        ("projectId", "string", False),
        ("oldPrice", "uint256", False),
        ("newPrice", "uint256", False),
    ),
    _event("Paused", ("account", "address", False)),
    _event("Unpaused", ("account", "address", False)),
]

EVENT_NAMES = [entry["name"] for entry in MICRO_CREDIT_ABI if entry["type"] == "event"]
