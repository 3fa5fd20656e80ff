import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, func

from core.sourcing.models import Candidate as CandidateProfile
from core.utils import utcnow
from database.models import Candidate, SearchCandidate
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class CandidateRepository(BaseRepository):
    def get_by_public_identifier(self, public_identifier: str) -> Optional[Candidate]:
        stmt = select(Candidate).where(Candidate.public_identifier == public_identifier)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_id(self, candidate_id: str) -> Optional[Candidate]:
        return self.db.get(Candidate, candidate_id)

    def upsert(self, profile: CandidateProfile) -> Candidate:
        """Insert or refresh the canonical row for a sourced profile."""
        candidate = self.get_by_public_identifier(profile.public_identifier)
        if candidate is None:
            candidate = Candidate(public_identifier=profile.public_identifier)
            self.db.add(candidate)

        candidate.linkedin_url = profile.profile_url
        candidate.full_name = profile.full_name
        candidate.first_name = profile.first_name
        candidate.last_name = profile.last_name
        candidate.headline = profile.headline
        candidate.summary = profile.summary
        candidate.photo_url = profile.photo_url
        candidate.location = profile.location
        candidate.follower_count = profile.follower_count
        candidate.connection_count = profile.connection_count
        candidate.experiences = [e.model_dump() for e in profile.experiences]
        candidate.skills = list(profile.skills)
        candidate.educations = [e.model_dump() for e in profile.educations]
        candidate.certifications = [c.model_dump() for c in profile.certifications]
        candidate.languages = list(profile.languages)
        candidate.honors = list(profile.honors)
        candidate.source_data = profile.source_data
        self.db.flush()
        return candidate

    def link_to_search(
        self,
        search_id: str,
        candidate_id: str,
        source_provider: str,
        sourcing_strategy_id: Optional[str] = None
    ) -> SearchCandidate:
        stmt = select(SearchCandidate).where(
            SearchCandidate.search_id == search_id,
            SearchCandidate.candidate_id == candidate_id
        )
        link = self.db.execute(stmt).scalar_one_or_none()
        if link is None:
            link = SearchCandidate(
                search_id=search_id,
                candidate_id=candidate_id,
                source_provider=source_provider,
                sourcing_strategy_id=sourcing_strategy_id,
                pros=[],
                cons=[],
                created_at=utcnow()
            )
            self.db.add(link)
            self.db.flush()
        return link

    def list_unscored(self, search_id: str) -> List[SearchCandidate]:
        stmt = (
            select(SearchCandidate)
            .where(
                SearchCandidate.search_id == search_id,
                SearchCandidate.match_score.is_(None),
                SearchCandidate.scoring_error.is_(None)
            )
            .order_by(SearchCandidate.created_at.asc(), SearchCandidate.id.asc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def save_score(self, search_candidate_id: str, score: int, pros: List[str], cons: List[str]) -> None:
        link = self.db.get(SearchCandidate, search_candidate_id)
        if link is None:
            return
        link.match_score = score
        link.pros = list(pros)
        link.cons = list(cons)
        link.scoring_error = None
        link.scoring_updated_at = utcnow()

    def save_scoring_error(self, search_candidate_id: str, error: str) -> None:
        link = self.db.get(SearchCandidate, search_candidate_id)
        if link is None:
            return
        link.scoring_error = error
        link.scoring_updated_at = utcnow()

    def paginate_for_search(
        self,
        search_id: str,
        page: int = 1,
        limit: int = 20,
        min_score: Optional[int] = None
    ) -> Tuple[List[SearchCandidate], int]:
        """Results ordered by score (unscored last), then insertion order."""
        base = select(SearchCandidate).where(SearchCandidate.search_id == search_id)
        if min_score is not None:
            base = base.where(SearchCandidate.match_score >= min_score)

        total = self.db.execute(
            select(func.count()).select_from(base.subquery())
        ).scalar_one()

        stmt = (
            base
            .order_by(
                SearchCandidate.match_score.is_(None),
                SearchCandidate.match_score.desc(),
                SearchCandidate.created_at.asc(),
                SearchCandidate.id.asc()
            )
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all()), total


def row_to_profile(row: Candidate) -> CandidateProfile:
    """Rebuild the canonical profile from a stored candidate row."""
    return CandidateProfile(
        public_identifier=row.public_identifier,
        profile_url=row.linkedin_url,
        full_name=row.full_name,
        first_name=row.first_name,
        last_name=row.last_name,
        headline=row.headline,
        summary=row.summary,
        photo_url=row.photo_url,
        location=row.location,
        follower_count=row.follower_count,
        connection_count=row.connection_count,
        experiences=row.experiences,
        skills=row.skills,
        educations=row.educations,
        certifications=row.certifications,
        languages=row.languages,
        honors=row.honors,
        source_data=row.source_data,
    )
