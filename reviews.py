import logging
from typing import Dict, List, Optional

from database import Store, to_obj_id
from errors import FunkoPopNotFound, ReviewNotFound, now_millis
from schemas import Review as ReviewSchema, sanitize
from security import ensure_author, ensure_author_or_admin
from validation import REVIEW_RULES, validate

logger = logging.getLogger(__name__)

REVIEWS_PAGE_SIZE = 10


class ReviewService:
    """
    Review pipeline for one funko pop.

    Every step checks the parent funko pop first, then the review, then the
    caller's right to touch it, and only then the request body.
    """

    def __init__(self, funkopops: Store, reviews: Store):
        self.funkopops = funkopops
        self.reviews = reviews

    async def _get_funkopop(self, pop_id: str) -> Dict:
        pop = await self.funkopops.find_by_key(pop_id)
        if not pop:
            raise FunkoPopNotFound()
        return pop

    async def _get_review(self, review_id: str) -> Dict:
        review = await self.reviews.find_by_key(review_id)
        if not review:
            raise ReviewNotFound()
        return review

    async def list_for(self, pop_id: str) -> List[Dict]:
        pop = await self._get_funkopop(pop_id)
        reviews = await self.reviews.find_all({"productId": pop["_id"]}, limit=REVIEWS_PAGE_SIZE)
        return [sanitize(r) for r in reviews]

    async def create(self, pop_id: str, user: Dict, payload: Optional[Dict]) -> Dict:
        pop = await self._get_funkopop(pop_id)
        data = validate(payload, REVIEW_RULES)

        doc = ReviewSchema(
            productId=pop["_id"],
            userId=to_obj_id(user["id"]),
            message=data["message"],
            timestamp=now_millis(),
        ).model_dump()
        review = await self.reviews.create(doc)
        # two independent writes; a crash in between leaves the review unlisted on the product
        await self.funkopops.push_by_key(pop["_id"], "reviews", review["_id"])
        logger.info("User %s reviewed funko pop %s", user["id"], pop["_id"])
        return sanitize(review)

    async def edit(self, pop_id: str, review_id: str, user: Dict, payload: Optional[Dict]) -> Dict:
        await self._get_funkopop(pop_id)
        review = await self._get_review(review_id)
        ensure_author(user, review)
        data = validate(payload, REVIEW_RULES)

        updated = await self.reviews.update_by_key(
            review["_id"], {"message": data["message"], "timestamp": now_millis()}
        )
        if not updated:
            raise ReviewNotFound()
        return sanitize(updated)

    async def delete(self, pop_id: str, review_id: str, user: Dict) -> Dict:
        """Delete a review; its id stays in the funko pop's review list."""
        await self._get_funkopop(pop_id)
        review = await self._get_review(review_id)
        ensure_author_or_admin(user, review)

        deleted = await self.reviews.delete_by_key(review["_id"])
        if not deleted:
            raise ReviewNotFound()
        logger.info("User %s deleted review %s", user["id"], review["_id"])
        return sanitize(deleted)
