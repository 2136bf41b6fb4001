"""
Marketplace - Wires the engine to its reference adapters.

This module ties together everything needed to run auctions in-process:
- Bank holding currency balances
- Custody adapter holding escrowed tokens for the engine
- Fee splitter paying platform fees and royalties
- Off-chain escrow for non-tokenized sales
- Role registry for administrative operations

Used by the CLI demo, simulations and tests. Production deployments
supply their own adapters to AuctionEngine directly.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from vertix.core.access import Role, RoleRegistry
from vertix.core.assets.custody import InMemoryCustody
from vertix.core.auction.engine import ENGINE_ADDRESS, AuctionEngine
from vertix.core.clock import Clock, ManualClock
from vertix.core.config import EngineConfig
from vertix.core.funds.bank import Bank
from vertix.core.payments.escrow import OffchainEscrow
from vertix.core.payments.fees import FeeSplitter
from vertix.core.storage.storage_manager import StorageManager
from vertix.crypto import address_from_label, short_hex
from vertix.utils.logger import get_logger

logger = get_logger("marketplace")

TREASURY_ADDRESS = address_from_label("vertix.treasury")
ADMIN_ADDRESS = address_from_label("vertix.admin")


@dataclass
class Marketplace:
    """An engine together with the adapters it was built on."""
    engine: AuctionEngine
    bank: Bank
    custody: InMemoryCustody
    payments: FeeSplitter
    escrow: OffchainEscrow
    roles: RoleRegistry
    clock: Clock

    def fund(self, account: bytes, amount: int) -> None:
        """Give an account spendable currency."""
        self.bank.deposit(account, amount)

    def close(self) -> None:
        if self.engine.storage_manager:
            self.engine.storage_manager.close()


def build_marketplace(
    config: Optional[EngineConfig] = None,
    clock: Optional[Clock] = None,
    admin: bytes = ADMIN_ADDRESS,
    fee_recipient: bytes = TREASURY_ADDRESS,
    data_dir: Optional[Path] = None,
) -> Marketplace:
    """
    Build an engine with in-memory reference adapters.

    Args:
        config: Engine configuration (defaults if None)
        clock: Time source; a ManualClock if None
        admin: Account granted every administrative role
        fee_recipient: Account receiving platform fees
        data_dir: If set, engine state is persisted to SQLite here

    Returns:
        Marketplace bundle
    """
    config = config or EngineConfig()
    clock = clock or ManualClock()

    bank = Bank()
    custody = InMemoryCustody(holder=ENGINE_ADDRESS)
    payments = FeeSplitter(bank, custody, fee_recipient, config.platform_fee_bps)
    escrow = OffchainEscrow()
    roles = RoleRegistry(admin)
    roles.grant(admin, Role.PAUSER | Role.FEE_MANAGER)

    storage_manager = StorageManager(data_dir) if data_dir else None

    engine = AuctionEngine(
        bank=bank,
        custody=custody,
        payments=payments,
        roles=roles,
        clock=clock,
        config=config,
        escrow=escrow,
        storage_manager=storage_manager,
    )

    logger.info(f"Marketplace ready: engine={short_hex(engine.address)}, "
                f"fee={payments.platform_fee_bps}bps, persistent={storage_manager is not None}")

    return Marketplace(
        engine=engine,
        bank=bank,
        custody=custody,
        payments=payments,
        escrow=escrow,
        roles=roles,
        clock=clock,
    )
