"""Caller resolution and ownership checks for uploads."""

from typing import Mapping

from tubely.core.exceptions import BadRequest, Forbidden, NotFound
from tubely.modules.auth.jwt import get_bearer_token, validate_jwt
from tubely.modules.video.repository import VideoStore
from tubely.modules.video.schemas import VideoRecord


class UploadAuthorizer:
    """Resolves the caller and enforces that they own the target video.

    Read-only: the credential is validated before the store is touched at
    all, and the store is only read.
    """

    def __init__(self, store: VideoStore, secret_key: str):
        self.store = store
        self.secret_key = secret_key

    async def authorize(
        self,
        video_id: str,
        headers: Mapping[str, str],
    ) -> tuple[VideoRecord, str]:
        """Authorize an upload to ``video_id``.

        Returns:
            tuple[VideoRecord, str]: The target record and the caller's user ID

        Raises:
            BadRequest: If no video ID was supplied
            Unauthenticated: If the bearer credential is missing or invalid
            NotFound: If the video does not exist
            Forbidden: If the caller does not own the video
        """
        if not video_id:
            raise BadRequest("Invalid video ID")

        token = get_bearer_token(headers)
        user_id = validate_jwt(token, self.secret_key)

        record = await self.store.get_by_id(video_id)
        if record is None:
            raise NotFound(f"Couldn't find video {video_id}")
        if record.user_id != user_id:
            raise Forbidden("User cannot upload to a video owned by another user")

        return record, user_id
