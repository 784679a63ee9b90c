from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from oncoshare.auth import require_admin
from oncoshare.database import get_db
from oncoshare.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from oncoshare.services.category_service import category_service
from oncoshare.sessions import Session

router = APIRouter()


async def _with_counts(db: AsyncSession, category) -> CategoryResponse:
    response = CategoryResponse.model_validate(category)
    response.document_count, response.video_count = await category_service.counts(db, category.id)
    return response


@router.get("")
async def list_categories(db: AsyncSession = Depends(get_db)):
    listing = await category_service.list_categories(db)
    categories = []
    for entry in listing:
        response = CategoryResponse.model_validate(entry["category"])
        response.document_count = entry["document_count"]
        response.video_count = entry["video_count"]
        categories.append(response)
    return {"categories": categories, "total": len(categories)}


@router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(
    data: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_admin),
):
    category = await category_service.create_category(db, session, data.name, data.description)
    return await _with_counts(db, category)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_admin),
):
    category = await category_service.update_category(
        db, session, category_id, name=data.name, description=data.description
    )
    return await _with_counts(db, category)


@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_admin),
):
    await category_service.delete_category(db, session, category_id)
    return {"deleted": True, "category_id": category_id}
