from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class ParagraphBlock(BaseModel):
    type: Literal["paragraph"] = "paragraph"
    text: str = ""


class SubheadBlock(BaseModel):
    type: Literal["subhead"] = "subhead"
    text: str = ""


class QuoteBlock(BaseModel):
    type: Literal["quote"] = "quote"
    text: str = ""
    cite: str | None = None


class ImageBlock(BaseModel):
    type: Literal["image"] = "image"
    src: str = ""
    alt: str | None = None
    caption: str | None = None
    credit: str | None = None


class GalleryImage(BaseModel):
    src: str
    alt: str | None = None


class GalleryBlock(BaseModel):
    type: Literal["gallery"] = "gallery"
    title: str | None = None
    images: list[GalleryImage] = Field(default_factory=list)


class PdfBlock(BaseModel):
    type: Literal["pdf"] = "pdf"
    title: str | None = None
    src: str = ""


class EmbedBlock(BaseModel):
    type: Literal["embed"] = "embed"
    title: str | None = None
    provider: str = "iframe"
    url: str = ""


class ListBlock(BaseModel):
    type: Literal["list"] = "list"
    items: list[str] = Field(default_factory=list)


class LinkItem(BaseModel):
    label: str
    url: str


class LinksBlock(BaseModel):
    type: Literal["links"] = "links"
    title: str | None = None
    items: list[LinkItem] = Field(default_factory=list)


NewsBlock = Annotated[
    Union[
        ParagraphBlock,
        SubheadBlock,
        QuoteBlock,
        ImageBlock,
        GalleryBlock,
        PdfBlock,
        EmbedBlock,
        ListBlock,
        LinksBlock,
    ],
    Field(discriminator="type"),
]


class NewsAuthor(BaseModel):
    name: str
    role: str | None = None


class NewsHero(BaseModel):
    image: str | None = None
    caption: str | None = None
    credit: str | None = None


class NewsListItem(BaseModel):
    slug: str
    title: str = ""
    dek: str | None = None
    author: NewsAuthor | None = None
    published_at: str = ""
    tags: list[str] = Field(default_factory=list)
    hero: NewsHero = Field(default_factory=NewsHero)


class NewsArticle(NewsListItem):
    updated_at: str | None = None
    links: list[LinkItem] = Field(default_factory=list)
    content: list[NewsBlock] = Field(default_factory=list)


class NewsArticleView(BaseModel):
    article: NewsArticle
    formatted_date: str
    reading_time: str
