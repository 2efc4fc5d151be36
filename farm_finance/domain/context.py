"""Engine context - the explicitly constructed set of services shared by one game session"""

import random
from dataclasses import dataclass
from typing import Optional

from farm_finance.config import Settings, settings as default_settings
from farm_finance.domain.credit_history import CreditHistory
from farm_finance.domain.credit_score import CreditScore
from farm_finance.domain.finance import FinanceManager
from farm_finance.domain.sales import SaleManager
from farm_finance.infrastructure.host import FarmHost


@dataclass
class EngineContext:
    host: FarmHost
    config: Settings
    credit_history: CreditHistory
    credit_score: CreditScore
    finance_manager: FinanceManager
    sale_manager: SaleManager

    def reset(self) -> None:
        """Drop all engine state (used before loading a saved game)"""
        self.credit_history.clear()
        self.finance_manager.clear()
        self.sale_manager.clear()


def build_context(
    host: FarmHost, config: Optional[Settings] = None, rng: Optional[random.Random] = None
) -> EngineContext:
    config = config or default_settings
    history = CreditHistory()
    finance_manager = FinanceManager(host, history, config=config)
    sale_manager = SaleManager(host, finance_manager, config=config, rng=rng)
    return EngineContext(
        host=host,
        config=config,
        credit_history=history,
        credit_score=finance_manager.credit_score,
        finance_manager=finance_manager,
        sale_manager=sale_manager,
    )
