"""Fold a batch of comments into the running per-user aggregates."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from dslcrawler.extract import total_text_length
from dslcrawler.models import CommentRecord, User
from dslcrawler.store import RecordTable

logger = logging.getLogger(__name__)

Identity = Tuple[str, bool]


def group_by_identity(comments: Iterable[CommentRecord]) -> Dict[Identity, List[CommentRecord]]:
    """Group comments by ``(user, registered)`` in order of first appearance."""

    groups: Dict[Identity, List[CommentRecord]] = {}
    for comment in comments:
        groups.setdefault((comment.user, comment.registered), []).append(comment)
    return groups


def _earliest(current: Optional[datetime], candidate: datetime) -> datetime:
    return candidate if current is None or candidate < current else current


def _latest(current: Optional[datetime], candidate: datetime) -> datetime:
    return candidate if current is None or candidate > current else current


def merge_comments(user: User, comments: Sequence[CommentRecord], article_num: int) -> User:
    """Return ``user`` with one article's worth of that user's comments folded in.

    ``comments`` must be non-empty and all belong to ``user``. A brand new
    identity is folded into ``User(name=..., registered=...)``, whose zero
    counters make creation and merge the same computation.
    """

    if not comments:
        raise ValueError("merge_comments needs at least one comment")

    times = [comment.time for comment in comments]
    ranks = [comment.rank for comment in comments if comment.rank is not None]
    count = len(comments)

    merged = user.model_copy(
        update={
            "commented_article_count": user.commented_article_count + 1,
            "comment_count": user.comment_count + count,
            "ranked_comment_count": user.ranked_comment_count + len(ranks),
            "first_comment_time": _earliest(user.first_comment_time, min(times)),
            "last_comment_time": _latest(user.last_comment_time, max(times)),
            "first_comment_count": user.first_comment_count
            + sum(1 for comment in comments if comment.first),
            "total_comment_rank": user.total_comment_rank + sum(ranks),
            "total_comment_length": user.total_comment_length + total_text_length(comments),
        }
    )
    # Strictly greater: an equal count keeps the article recorded first.
    if count > user.most_commented_article_comment_count:
        merged.most_commented_article_comment_count = count
        merged.most_commented_article_num = article_num
    return merged


def fold_comments(
    comments: Iterable[CommentRecord], article_num: int, users: RecordTable[User]
) -> List[User]:
    """Merge ``comments`` of article ``article_num`` into the stored user records.

    Every identity is updated inside its own key lock, so concurrent crawl
    tasks touching the same user never lose each other's increments.
    """

    stored: List[User] = []
    for (name, registered), group in group_by_identity(comments).items():
        criteria = {"name": name, "registered": registered}
        with users.locked((name, registered)):
            existing = users.find_record(criteria)
            base = existing if existing is not None else User(**criteria)
            merged = merge_comments(base, group, article_num)
            if existing is None:
                record = users.create(merged.model_dump(exclude={"id"}))
            else:
                record = users.update(merged.model_dump())
        stored.append(record)

    logger.debug("Folded comments of article %d into %d users", article_num, len(stored))
    return stored


__all__ = ["Identity", "fold_comments", "group_by_identity", "merge_comments"]
