"""分类服务层"""
import logging
from typing import Any

from sqlalchemy import select, func, or_, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import CircularReferenceError, ConflictError, NotFoundError, ValidationError
from ..models.category import Category, LANGUAGES
from ..models.news import News
from ..schemas.category import CategoryCreate, CategoryUpdate
from ..utils.validators import slugify
from .bulk import ensure_action, run_bulk

logger = logging.getLogger(__name__)

# 遍历父链/子树的最大深度，防止脏数据中未被发现的环导致死循环
MAX_TREE_DEPTH = 100


class CategoryService:
    """分类服务"""

    @staticmethod
    async def get(db: AsyncSession, category_id: int) -> Category:
        category = await db.get(Category, int(category_id))
        if category is None:
            raise NotFoundError("Category not found")
        return category

    @staticmethod
    async def get_by_slug(db: AsyncSession, slug: str) -> Category:
        result = await db.execute(select(Category).where(Category.slug == slug))
        category = result.scalar_one_or_none()
        if category is None:
            raise NotFoundError("Category not found")
        return category

    @staticmethod
    async def _parent_id_of(db: AsyncSession, category_id: int) -> int | None:
        result = await db.execute(select(Category.parent_id).where(Category.id == int(category_id)))
        return result.scalar_one_or_none()

    @staticmethod
    async def would_create_cycle(db: AsyncSession, category_id: int | None, parent_id: int | None) -> bool:
        """
        判断把 parent_id 设为 category_id 的父级是否会形成环

        沿 parent_id 的祖先链向上查找，链中出现 category_id 即为环。
        新建分类（category_id 为 None）不可能成环。
        """
        if category_id is None or parent_id is None:
            return False
        current: int | None = int(parent_id)
        depth = 0
        while current is not None:
            if current == int(category_id):
                return True
            depth += 1
            if depth > MAX_TREE_DEPTH:
                logger.warning("category ancestor walk exceeded depth guard start=%s", parent_id)
                return True
            current = await CategoryService._parent_id_of(db, current)
        return False

    @staticmethod
    async def _check_parent(db: AsyncSession, category_id: int | None, parent_id: int | None) -> None:
        if parent_id is None:
            return
        if category_id is not None and int(parent_id) == int(category_id):
            raise CircularReferenceError("A category cannot be its own parent.")
        parent = await db.get(Category, int(parent_id))
        if parent is None:
            raise ValidationError("Parent category does not exist.")
        if await CategoryService.would_create_cycle(db, category_id, parent_id):
            raise CircularReferenceError(
                "Cannot set parent category: this would create a circular reference."
            )

    @staticmethod
    def _validate_language(language: str | None) -> None:
        if language is not None and language not in LANGUAGES:
            raise ValidationError(f"Invalid language: {language}")

    @staticmethod
    async def _ensure_unique_slug(db: AsyncSession, slug: str, exclude_id: int | None = None) -> None:
        stmt = select(Category.id).where(Category.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(Category.id != int(exclude_id))
        result = await db.execute(stmt)
        if result.first() is not None:
            raise ConflictError(f"Category slug already exists: {slug}")

    @staticmethod
    async def create(db: AsyncSession, data: CategoryCreate) -> Category:
        """创建分类"""
        payload = data.model_dump()
        CategoryService._validate_language(payload.get("language"))
        slug = slugify(payload.get("slug") or "") or slugify(payload["name"])
        if not slug:
            raise ValidationError("Unable to derive a slug from the category name.")
        payload["slug"] = slug
        await CategoryService._check_parent(db, None, payload.get("parent_id"))
        await CategoryService._ensure_unique_slug(db, slug)

        category = Category(**payload)
        db.add(category)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError(f"Category slug already exists: {slug}")
        await db.refresh(category)
        logger.info("category created id=%s slug=%s", category.id, category.slug)
        return category

    @staticmethod
    async def update(db: AsyncSession, category_id: int, data: CategoryUpdate) -> Category:
        """更新分类；父级变化时先做环检测，失败不写库"""
        category = await CategoryService.get(db, category_id)
        update_data: dict[str, Any] = data.model_dump(exclude_unset=True)
        CategoryService._validate_language(update_data.get("language"))

        if "parent_id" in update_data and update_data["parent_id"] != category.parent_id:
            await CategoryService._check_parent(db, category.id, update_data["parent_id"])

        if "slug" in update_data:
            update_data["slug"] = slugify(update_data["slug"] or "")
        name_changed = "name" in update_data and update_data["name"] != category.name
        slug_value = update_data.get("slug", category.slug)
        if name_changed and not slug_value:
            update_data["slug"] = slugify(update_data["name"])
        elif "slug" in update_data and not update_data["slug"]:
            update_data.pop("slug")
        if update_data.get("slug"):
            await CategoryService._ensure_unique_slug(db, update_data["slug"], exclude_id=category.id)

        for field, value in update_data.items():
            setattr(category, field, value)
        await db.commit()
        await db.refresh(category)
        return category

    @staticmethod
    async def has_children(db: AsyncSession, category_id: int) -> bool:
        result = await db.execute(select(Category.id).where(Category.parent_id == int(category_id)).limit(1))
        return result.first() is not None

    @staticmethod
    async def has_news(db: AsyncSession, category_id: int) -> bool:
        result = await db.execute(select(News.id).where(News.category_id == int(category_id)).limit(1))
        return result.first() is not None

    @staticmethod
    async def delete(db: AsyncSession, category_id: int) -> None:
        """删除分类；存在子分类或关联新闻时拒绝"""
        category = await CategoryService.get(db, category_id)
        if await CategoryService.has_children(db, category.id):
            raise ConflictError("Cannot delete category with subcategories.")
        if await CategoryService.has_news(db, category.id):
            raise ConflictError("Cannot delete category with associated news articles.")
        await db.delete(category)
        await db.commit()
        logger.info("category deleted id=%s", category_id)

    @staticmethod
    async def get_descendant_ids(db: AsyncSession, category_id: int) -> list[int]:
        """自身ID加全部后代ID（深度优先）"""
        ids: list[int] = []
        seen: set[int] = set()

        async def _walk(cid: int, depth: int) -> None:
            if cid in seen or depth > MAX_TREE_DEPTH:
                return
            seen.add(cid)
            ids.append(cid)
            result = await db.execute(
                select(Category.id).where(Category.parent_id == cid).order_by(Category.sort_order, Category.id)
            )
            for child_id in result.scalars().all():
                await _walk(int(child_id), depth + 1)

        await _walk(int(category_id), 0)
        return ids

    @staticmethod
    async def get_ancestors(db: AsyncSession, category: Category) -> list[Category]:
        """祖先列表（根在前，不含自身）"""
        chain: list[Category] = []
        seen: set[int] = {category.id}
        current_id = category.parent_id
        while current_id is not None and len(chain) < MAX_TREE_DEPTH:
            if current_id in seen:
                break
            seen.add(current_id)
            parent = await db.get(Category, current_id)
            if parent is None:
                break
            chain.append(parent)
            current_id = parent.parent_id
        chain.reverse()
        return chain

    @staticmethod
    async def get_breadcrumb(db: AsyncSession, category_id: int) -> list[dict[str, Any]]:
        category = await CategoryService.get(db, category_id)
        chain = await CategoryService.get_ancestors(db, category) + [category]
        return [{"id": c.id, "name": c.name, "slug": c.slug, "url": c.url} for c in chain]

    @staticmethod
    async def get_total_news_count(db: AsyncSession, category_id: int) -> int:
        """自身及后代分类下已公开发布的新闻数"""
        ids = await CategoryService.get_descendant_ids(db, category_id)
        result = await db.execute(
            select(func.count(News.id)).where(News.category_id.in_(ids), News.effectively_published())
        )
        return int(result.scalar() or 0)

    @staticmethod
    async def get_tree(db: AsyncSession, active_only: bool = True) -> list[dict[str, Any]]:
        """分类树：根节点及其子节点，按 sort_order、name 排序"""
        stmt = select(Category).order_by(Category.sort_order, Category.name)
        if active_only:
            stmt = stmt.where(Category.is_active == True)
        result = await db.execute(stmt)
        categories = list(result.scalars().all())

        by_parent: dict[int | None, list[Category]] = {}
        for c in categories:
            by_parent.setdefault(c.parent_id, []).append(c)

        def _build(parent_id: int | None, depth: int) -> list[dict[str, Any]]:
            if depth > MAX_TREE_DEPTH:
                return []
            return [
                {
                    "id": c.id,
                    "name": c.name,
                    "slug": c.slug,
                    "sort_order": c.sort_order,
                    "children": _build(c.id, depth + 1),
                }
                for c in by_parent.get(parent_id, [])
            ]

        return _build(None, 0)

    @staticmethod
    async def get_list(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        search: str | None = None,
        is_active: bool | None = None,
        parent_id: int | None = None,
        language: str | None = None,
    ) -> tuple[list[Category], int]:
        conditions = []
        if search:
            like = f"%{search.strip()}%"
            conditions.append(or_(Category.name.ilike(like), Category.description.ilike(like)))
        if is_active is not None:
            conditions.append(Category.is_active == is_active)
        if parent_id is not None:
            conditions.append(Category.parent_id == parent_id)
        if language:
            conditions.append(Category.language == language)

        count_result = await db.execute(select(func.count(Category.id)).where(*conditions))
        total = int(count_result.scalar() or 0)

        result = await db.execute(
            select(Category)
            .where(*conditions)
            .order_by(Category.sort_order, Category.name)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def popular(db: AsyncSession, limit: int = 6) -> list[tuple[Category, int]]:
        """按已发布新闻总数排序的活跃分类"""
        news_count = func.count(News.id).label("news_count")
        result = await db.execute(
            select(Category, news_count)
            .join(News, (News.category_id == Category.id) & (News.status == "published") & News.deleted_at.is_(None))
            .where(Category.is_active == True)
            .group_by(Category.id)
            .order_by(desc(news_count), Category.id)
            .limit(limit)
        )
        return [(row[0], int(row[1])) for row in result.all()]

    @staticmethod
    async def get_meta(db: AsyncSession, category_id: int, key: str, default: object = None) -> object:
        category = await CategoryService.get(db, category_id)
        return (category.meta or {}).get(key, default)

    @staticmethod
    async def set_meta(db: AsyncSession, category_id: int, key: str, value: object) -> Category:
        category = await CategoryService.get(db, category_id)
        meta = dict(category.meta or {})
        meta[key] = value
        category.meta = meta
        await db.commit()
        await db.refresh(category)
        return category

    @staticmethod
    async def bulk_action(db: AsyncSession, action: str, ids: list[int]) -> dict[str, Any]:
        a = ensure_action(action, {"delete", "activate", "deactivate"})

        async def _handle(category_id: int) -> None:
            if a == "delete":
                await CategoryService.delete(db, category_id)
                return
            category = await CategoryService.get(db, category_id)
            category.is_active = a == "activate"
            await db.commit()

        return await run_bulk(a, ids, _handle)


category_service = CategoryService()
