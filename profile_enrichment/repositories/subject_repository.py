from sqlalchemy.ext.asyncio import AsyncSession

from profile_enrichment.database.models import Subject
from profile_enrichment.repositories.base_repository import BaseRepository


class SubjectRepository(BaseRepository[Subject]):
    """Read access to subjects owned by the directory service.

    Subjects are created and edited elsewhere; this service only looks them
    up by id and reads the legacy provider columns.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, Subject)
