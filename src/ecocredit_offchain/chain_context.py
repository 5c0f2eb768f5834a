"""
Ledger Chain Context Management

Network configuration and explorer links for the credit ledger contract.
Mirrors the network switch of the client: testnet, mainnet or a local
in-process ledger used for development and tests.
"""

from typing import Optional


EXPLORERS = {
    "testnet": "https://hashscan.io/testnet",
    "mainnet": "https://hashscan.io/mainnet",
    "previewnet": "https://hashscan.io/previewnet",
}

JSON_RPC_RELAYS = {
    "testnet": "https://testnet.hashio.io/api",
    "mainnet": "https://mainnet.hashio.io/api",
    "previewnet": "https://previewnet.hashio.io/api",
}


class LedgerChainContext:
    """Manages network configuration for the credit ledger"""

    def __init__(
        self,
        network: str = "testnet",
        contract_id: Optional[str] = None,
        rpc_url: Optional[str] = None,
        explorer_base: Optional[str] = None,
    ):
        """
        Initialize chain context

        Args:
            network: Network type ("testnet", "mainnet", "previewnet" or "local")
            contract_id: Deployed contract id or EVM address
            rpc_url: JSON-RPC relay override
            explorer_base: Explorer base URL override
        """
        if network not in EXPLORERS and network != "local":
            raise ValueError(f"Unknown network: {network}")

        self.network = network
        self.contract_id = contract_id
        self.rpc_url = rpc_url or JSON_RPC_RELAYS.get(network)
        self.explorer_base = (explorer_base or EXPLORERS.get(network, "http://localhost/explorer")).rstrip("/")

    @property
    def is_local(self) -> bool:
        return self.network == "local"

    def get_network_info(self) -> dict:
        """
        Get network configuration information

        Returns:
            Dictionary containing network information
        """
        return {
            "network": self.network,
            "contract_id": self.contract_id,
            "rpc_url": self.rpc_url,
            "explorer": self.explorer_base,
        }

    def get_explorer_url(self, tx_id: str) -> str:
        """Explorer URL for a transaction"""
        return f"{self.explorer_base}/transaction/{tx_id}"

    def get_contract_url(self) -> str:
        return f"{self.explorer_base}/contract/{self.contract_id}"

    def get_topic_url(self, topic_id: str) -> str:
        return f"{self.explorer_base}/topic/{topic_id}"
