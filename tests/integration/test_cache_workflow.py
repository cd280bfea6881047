# ABOUTME: Integration tests for the resume-where-you-left-off workflow.
# ABOUTME: Imports an EPUB into the cache, records history, and restores editor state across connections.

import time
from pathlib import Path

from zenpub.core.project import ProjectData
from zenpub.db import ProjectCache, UserState, open_cache
from zenpub.formats.epub import read_epub


class TestCacheWorkflow:
    """Integration tests for the local cache lifecycle."""

    def test_imported_project_survives_reopen(self, sample_epub: Path, tmp_path: Path) -> None:
        db_path = tmp_path / "cache.db"
        book = read_epub(sample_epub.read_bytes())

        conn = open_cache(db_path)
        cache = ProjectCache(conn)
        cache.save_project(ProjectData(metadata=book.metadata, chapters=book.chapters))
        cache.save_user_state(
            UserState(last_open_time=time.time(), active_chapter_id=book.chapters[1].id)
        )
        cache.add_file_to_history(str(sample_epub), time.time())
        conn.close()

        conn = open_cache(db_path)
        try:
            cache = ProjectCache(conn)
            project = cache.get_project()
            state = cache.get_user_state()
            history = cache.get_file_history()
        finally:
            conn.close()

        assert project.metadata.title == "The Quiet Garden"
        assert [c.title for c in project.chapters] == ["Intro", "Morning", "Evening"]
        assert state.active_chapter_id == project.chapters[1].id
        assert history[0].file_path == str(sample_epub)

    def test_history_retention(self, tmp_path: Path) -> None:
        conn = open_cache(tmp_path / "cache.db")
        try:
            cache = ProjectCache(conn)
            for i in range(25):
                cache.add_file_to_history(f"/books/{i}.epub", 1000.0 + i)
                cache.cleanup_old_history()
            paths = [entry.file_path for entry in cache.get_file_history()]
        finally:
            conn.close()

        assert paths == [f"/books/{i}.epub" for i in range(24, 14, -1)]
