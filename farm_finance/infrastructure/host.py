"""Host game collaborator: farm lookup and funds/ownership mutations"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from farm_finance.domain.models import Farm, Farmland, MoneyType

logger = logging.getLogger(__name__)


class FarmHost(ABC):
    """Operations the engine consumes from the host simulation"""

    @abstractmethod
    def get_farm_by_id(self, farm_id: int) -> Optional[Farm]:
        ...

    @abstractmethod
    def get_farm_by_user_id(self, user_id: str) -> Optional[Farm]:
        ...

    @abstractmethod
    def add_money(self, farm_id: int, amount: float, money_type: MoneyType) -> bool:
        """Apply a signed funds change; returns False when the farm is unknown"""

    @abstractmethod
    def get_farmland_by_id(self, farmland_id: int) -> Optional[Farmland]:
        ...

    @abstractmethod
    def set_land_owner(self, farmland_id: int, farm_id: int) -> bool:
        ...

    @abstractmethod
    def remove_vehicle(self, farm_id: int, vehicle_id: str) -> bool:
        ...


class InMemoryFarmHost(FarmHost):
    """Dictionary-backed host used by the service and the test suite"""

    def __init__(self, farms: Optional[List[Farm]] = None, farmlands: Optional[List[Farmland]] = None):
        self.farms: Dict[int, Farm] = {}
        self.farmlands: Dict[int, Farmland] = {}
        self.money_log: List[tuple[int, float, MoneyType]] = []
        for farmland in farmlands or []:
            self.farmlands[farmland.farmland_id] = farmland
        for farm in farms or []:
            self.upsert_farm(farm)

    def upsert_farm(self, farm: Farm) -> Farm:
        previous = self.farms.get(farm.farm_id)
        if previous is not None:
            for farmland in previous.farmlands:
                farmland.owner_farm_id = 0
        self.farms[farm.farm_id] = farm
        for farmland in farm.farmlands:
            farmland.owner_farm_id = farm.farm_id
            self.farmlands[farmland.farmland_id] = farmland
        return farm

    def get_farm_by_id(self, farm_id: int) -> Optional[Farm]:
        return self.farms.get(farm_id)

    def get_farm_by_user_id(self, user_id: str) -> Optional[Farm]:
        for farm in self.farms.values():
            if user_id in farm.user_ids:
                return farm
        return None

    def add_money(self, farm_id: int, amount: float, money_type: MoneyType) -> bool:
        farm = self.farms.get(farm_id)
        if farm is None:
            logger.warning("add_money for unknown farm", extra={"farm_id": farm_id})
            return False
        farm.money += amount
        self.money_log.append((farm_id, amount, money_type))
        return True

    def get_farmland_by_id(self, farmland_id: int) -> Optional[Farmland]:
        return self.farmlands.get(farmland_id)

    def set_land_owner(self, farmland_id: int, farm_id: int) -> bool:
        farmland = self.farmlands.get(farmland_id)
        target = self.farms.get(farm_id)
        if farmland is None or target is None:
            return False

        previous = self.farms.get(farmland.owner_farm_id)
        if previous is not None and farmland in previous.farmlands:
            previous.farmlands.remove(farmland)

        farmland.owner_farm_id = farm_id
        if farmland not in target.farmlands:
            target.farmlands.append(farmland)
        return True

    def remove_vehicle(self, farm_id: int, vehicle_id: str) -> bool:
        farm = self.farms.get(farm_id)
        if farm is None:
            return False
        vehicle = farm.get_vehicle(vehicle_id)
        if vehicle is None:
            return False
        farm.vehicles.remove(vehicle)
        return True
