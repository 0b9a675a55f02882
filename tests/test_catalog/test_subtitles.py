import io
import uuid

import pytest
from fastapi import UploadFile
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.db.models.subtitle import Subtitle
from app.services.subtitle_service import upload_subtitle

SRT = b"1\n00:00:01,000 --> 00:00:02,000\nBonjour\n"


@pytest.fixture
def subtitles_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "SUBTITLES_DIR", tmp_path)
    return tmp_path


async def _upload(client: AsyncClient, video_id, headers, *, filename="track.srt", data=None, content=SRT):
    form = {"language": "fr", "languageName": "Français"}
    if data is not None:
        form = data
    return await client.post(
        f"/api/v1/videos/{video_id}/subtitles",
        files={"subtitle": (filename, content, "application/x-subrip")},
        data=form,
        headers=headers,
    )


@pytest.mark.anyio
async def test_upload_stores_file_and_row(async_client: AsyncClient, admin_with_headers, create_video, subtitles_dir):
    _, headers = admin_with_headers
    video = await create_video()

    resp = await _upload(async_client, video.id, headers)
    assert resp.status_code == 201, resp.text
    data = resp.json()
    assert data["language"] == "fr"
    assert data["languageName"] == "Français"
    assert data["isDefault"] is False

    url = data["subtitleUrl"]
    assert url.startswith("/subtitles/") and url.endswith(".srt")
    stored = subtitles_dir / url.rsplit("/", 1)[1]
    assert stored.read_bytes() == SRT


@pytest.mark.anyio
async def test_default_upload_clears_previous_default(
    async_client: AsyncClient, admin_with_headers, create_video, subtitles_dir, db_session
):
    _, headers = admin_with_headers
    video = await create_video()

    first = await _upload(async_client, video.id, headers, data={"language": "fr", "isDefault": "true"})
    second = await _upload(async_client, video.id, headers, data={"language": "en", "isDefault": "1"})
    assert first.status_code == second.status_code == 201

    rows = (await db_session.execute(select(Subtitle).execution_options(populate_existing=True).where(Subtitle.video_id == video.id))).scalars().all()
    defaults = {s.language: s.is_default for s in rows}
    assert defaults == {"fr": False, "en": True}


@pytest.mark.anyio
async def test_upload_rejects_non_srt(async_client: AsyncClient, admin_with_headers, create_video, subtitles_dir):
    _, headers = admin_with_headers
    video = await create_video()

    resp = await _upload(async_client, video.id, headers, filename="track.vtt")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Seuls les fichiers .srt sont autorisés"
    assert list(subtitles_dir.iterdir()) == []


@pytest.mark.anyio
async def test_upload_requires_file(async_client: AsyncClient, admin_with_headers, create_video, subtitles_dir):
    _, headers = admin_with_headers
    video = await create_video()

    resp = await async_client.post(
        f"/api/v1/videos/{video.id}/subtitles", data={"language": "fr"}, headers=headers
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Fichier de sous-titres requis"


@pytest.mark.anyio
async def test_upload_requires_language(async_client: AsyncClient, admin_with_headers, create_video, subtitles_dir):
    _, headers = admin_with_headers
    video = await create_video()

    resp = await _upload(async_client, video.id, headers, data={"languageName": "Français"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Langue requise"


@pytest.mark.anyio
async def test_upload_too_large(async_client: AsyncClient, admin_with_headers, create_video, subtitles_dir, monkeypatch):
    _, headers = admin_with_headers
    video = await create_video()
    monkeypatch.setattr(settings, "SUBTITLE_MAX_BYTES", 16)

    resp = await _upload(async_client, video.id, headers)
    assert resp.status_code == 413
    assert resp.json()["code"] == "FILE_TOO_LARGE"


@pytest.mark.anyio
async def test_upload_unknown_video(async_client: AsyncClient, admin_with_headers, subtitles_dir):
    _, headers = admin_with_headers
    resp = await _upload(async_client, uuid.uuid4(), headers)
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_delete_removes_row_and_file(async_client: AsyncClient, admin_with_headers, create_video, subtitles_dir):
    _, headers = admin_with_headers
    video = await create_video()
    uploaded = (await _upload(async_client, video.id, headers)).json()
    stored = subtitles_dir / uploaded["subtitleUrl"].rsplit("/", 1)[1]
    assert stored.exists()

    resp = await async_client.delete(f"/api/v1/subtitles/{uploaded['id']}", headers=headers)
    assert resp.status_code == 200
    assert not stored.exists()

    again = await async_client.delete(f"/api/v1/subtitles/{uploaded['id']}", headers=headers)
    assert again.status_code == 404
    assert again.json()["detail"] == "Sous-titre non trouvé"


@pytest.mark.anyio
async def test_upload_requires_admin(async_client: AsyncClient, member_with_headers, create_video, subtitles_dir):
    _, headers = member_with_headers
    video = await create_video()
    resp = await _upload(async_client, video.id, headers)
    assert resp.status_code == 403


@pytest.mark.anyio
async def test_failed_insert_leaves_no_file(db_session, create_video, subtitles_dir, monkeypatch):
    video = await create_video()

    async def broken_commit():
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(db_session, "commit", broken_commit)

    with pytest.raises(SQLAlchemyError):
        await upload_subtitle(
            db_session,
            video.id,
            file=UploadFile(file=io.BytesIO(SRT), filename="track.srt"),
            language="fr",
            language_name="Français",
            is_default=True,
        )
    assert list(subtitles_dir.iterdir()) == []
