import logging
from typing import Dict, List, Optional, Tuple

from database import Store
from errors import FunkoPopNotFound
from schemas import FunkoPop as FunkoPopSchema, sanitize
from validation import FUNKOPOP_CREATE_RULES, FUNKOPOP_EDIT_RULES, validate

logger = logging.getLogger(__name__)


class FunkoPopService:
    """Catalog pipeline. Role checks happen in the route dependencies before these run."""

    def __init__(self, funkopops: Store):
        self.funkopops = funkopops

    async def list_all(self) -> Tuple[List[Dict], int]:
        pops = [sanitize(p) for p in await self.funkopops.find_all()]
        return pops, len(pops)

    async def get(self, pop_id: str) -> Dict:
        pop = await self.funkopops.find_by_key(pop_id)
        if not pop:
            raise FunkoPopNotFound()
        return sanitize(pop)

    async def create(self, payload: Optional[Dict]) -> Dict:
        data = validate(payload, FUNKOPOP_CREATE_RULES)
        doc = FunkoPopSchema(**data).model_dump()
        pop = await self.funkopops.create(doc)
        logger.info("Created funko pop %s", pop["_id"])
        return sanitize(pop)

    async def edit(self, pop_id: str, payload: Optional[Dict]) -> Dict:
        data = validate(payload, FUNKOPOP_EDIT_RULES, partial=True)
        pop = await self.funkopops.find_by_key(pop_id)
        if not pop:
            raise FunkoPopNotFound()
        if data:
            pop = await self.funkopops.update_by_key(pop_id, data)
            if not pop:
                raise FunkoPopNotFound()
        return sanitize(pop)

    async def delete(self, pop_id: str) -> Optional[Dict]:
        """Delete by key; None when nothing matched. Reviews of the product are left in place."""
        deleted = await self.funkopops.delete_by_key(pop_id)
        if deleted:
            logger.info("Deleted funko pop %s", pop_id)
        return sanitize(deleted)
