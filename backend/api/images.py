"""
Images API endpoints
"""

from fastapi import APIRouter, File, HTTPException, UploadFile
from pydantic import BaseModel

from polybox.images import ImageDecodeError, decode_image, load_image_dir
from backend.api.session import get_editor, get_current_image

router = APIRouter()


class ImageResponse(BaseModel):
    name: str
    width: int
    height: int
    order_index: int
    shape_count: int
    is_current: bool


class ImageListResponse(BaseModel):
    images: list[ImageResponse]
    current_index: int


class LoadDirRequest(BaseModel):
    image_dir: str


def _list_response() -> ImageListResponse:
    editor = get_editor()
    store = editor.store
    images = []
    for idx, image in enumerate(store.list_images()):
        ann = store.get_annotations(image.name)
        images.append(ImageResponse(
            name=image.name,
            width=image.width,
            height=image.height,
            order_index=idx,
            shape_count=len(ann.shapes) if ann else 0,
            is_current=idx == store.current_index,
        ))
    return ImageListResponse(images=images, current_index=store.current_index)


@router.get("", response_model=ImageListResponse)
async def list_images():
    """List all loaded images."""
    return _list_response()


@router.post("", response_model=ImageListResponse)
async def upload_images(files: list[UploadFile] = File(...)):
    """Upload and decode one or more images."""
    editor = get_editor()

    for upload in files:
        data = await upload.read()
        try:
            record = decode_image(upload.filename, data)
        except ImageDecodeError as e:
            raise HTTPException(status_code=400, detail=str(e))
        editor.load_image(record)

    return _list_response()


@router.post("/load-dir", response_model=ImageListResponse)
async def load_directory(request: LoadDirRequest):
    """Load every image in a local directory."""
    editor = get_editor()

    try:
        records = load_image_dir(request.image_dir)
    except OSError as e:
        raise HTTPException(status_code=400, detail=f"Cannot read directory: {e}")

    for record in records:
        editor.load_image(record)

    return _list_response()


@router.post("/select/{order_index}", response_model=ImageListResponse)
async def select_image(order_index: int):
    """Make an image current."""
    editor = get_editor()

    if not 0 <= order_index < editor.store.get_image_count():
        raise HTTPException(status_code=404, detail="Image not found at index")

    editor.select_image(order_index)
    return _list_response()


@router.post("/next", response_model=ImageListResponse)
async def next_image():
    get_editor().next_image()
    return _list_response()


@router.post("/prev", response_model=ImageListResponse)
async def prev_image():
    get_editor().prev_image()
    return _list_response()


@router.delete("/current", response_model=ImageListResponse)
async def delete_current_image():
    """Delete the current image and its annotations."""
    get_current_image()
    get_editor().delete_current_image()
    return _list_response()
