"""缩略图服务：为图片节点生成 500/250/100 三种宽度的缩略图。

- 任务执行前按 ``(fileId, userId)`` 重新查询节点，归属不符、节点不存在或非图片均为永久失败，不写任何文件；
- 三个尺寸并发生成、各自独立写入，单个尺寸失败不影响其它尺寸；
- 缩略图路径固定为 ``<local_path>_<width>``，重复执行同一任务只会覆盖，不会新增文件。
"""

from __future__ import annotations

import io
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from PIL import Image
from sqlalchemy.orm import Session

from files_manager.core.config import get_settings
from files_manager.core.exceptions import BlobNotFoundError, ThumbnailJobError
from files_manager.core.logger import logger
from files_manager.crud.file_nodes import file_node_crud
from files_manager.models.file_node import FileTypeEnum
from files_manager.services.blob_store import LocalBlobStore, get_blob_store
from files_manager.services.job_queue import ThumbnailJob


class ThumbnailService:
    DEFAULT_FMT = "PNG"
    DEFAULT_QUALITY = 85

    def __init__(self, widths: Optional[list[int]] = None) -> None:
        self._widths = widths

    @property
    def widths(self) -> list[int]:
        return list(self._widths or get_settings().thumbnail_widths)

    def process_job(
        self,
        db: Session,
        job: ThumbnailJob,
        *,
        blob_store: Optional[LocalBlobStore] = None,
    ) -> list[int]:
        """执行一次任务，返回成功写入的宽度列表；失败时抛出 ``ThumbnailJobError``。"""
        node = file_node_crud.get_owned(db, node_id=job.file_id, user_id=job.user_id)
        if node is None:
            raise ThumbnailJobError("File not found", permanent=True)
        if node.type != FileTypeEnum.IMAGE.value:
            raise ThumbnailJobError("File is not an image", permanent=True)
        if not node.local_path:
            raise ThumbnailJobError("File has no stored content", permanent=True)

        store = blob_store or get_blob_store()
        try:
            original = store.read(node.local_path)
        except BlobNotFoundError as exc:
            raise ThumbnailJobError("Source file not found", permanent=True) from exc

        widths = self.widths
        written: list[int] = []
        failed: dict[int, str] = {}
        with ThreadPoolExecutor(max_workers=len(widths), thread_name_prefix="thumbnail") as pool:
            futures = {
                width: pool.submit(self._render_and_write, store, node.local_path, original, width)
                for width in widths
            }
            for width, future in futures.items():
                try:
                    future.result()
                    written.append(width)
                except Exception as exc:
                    logger.warning("Thumbnail %s for file %s failed: %s", width, node.id, exc)
                    failed[width] = str(exc)

        if failed:
            details = ", ".join(f"{w}: {msg}" for w, msg in failed.items())
            raise ThumbnailJobError(
                f"Failed to generate {len(failed)} of {len(widths)} thumbnails ({details})",
                permanent=False,
                failed_widths=sorted(failed),
            )
        return written

    def _render_and_write(self, store: LocalBlobStore, local_path: str, original: bytes, width: int) -> str:
        return store.write_variant(local_path, width, self.make_thumbnail(original, width=width))

    def make_thumbnail(self, data: bytes, *, width: int) -> bytes:
        """按目标宽度等比缩放，尽量保持原图格式。"""
        img = Image.open(io.BytesIO(data))
        img.load()
        fmt = (img.format or self.DEFAULT_FMT).upper()

        src_width, src_height = img.size
        height = max(1, round(src_height * width / src_width))
        resized = img.resize((width, height), Image.LANCZOS)

        if fmt in ("JPEG", "JPG") and resized.mode not in ("RGB", "L"):
            resized = resized.convert("RGB")
        elif fmt not in ("JPEG", "JPG", "PNG", "GIF", "WEBP", "BMP", "TIFF"):
            fmt = self.DEFAULT_FMT

        out = io.BytesIO()
        try:
            if fmt in ("JPEG", "JPG"):
                resized.save(out, format="JPEG", quality=self.DEFAULT_QUALITY, optimize=True)
            else:
                resized.save(out, format=fmt)
        except (OSError, ValueError):
            # 指定格式无法编码时退回 PNG
            out = io.BytesIO()
            resized.save(out, format=self.DEFAULT_FMT)
        return out.getvalue()


thumbnail_service = ThumbnailService()
