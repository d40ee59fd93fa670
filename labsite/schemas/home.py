from pydantic import BaseModel, Field


class ImageRef(BaseModel):
    src: str
    alt: str = ""


class Stat(BaseModel):
    label: str = ""
    value: str = ""


class FocusBlock(BaseModel):
    title: str = ""
    body: str = ""


class ContactLink(BaseModel):
    label: str = ""
    href: str = ""


class ContactContent(BaseModel):
    eyebrow: str = "Contact"
    email_label: str = "Email"
    email: str = ""
    location_label: str = "Location"
    location: str = ""
    address_label: str = "Address"
    address: str = ""
    links: list[ContactLink] = Field(default_factory=list)


class HomeAboutContent(BaseModel):
    eyebrow: str = "About the group"
    title: str = ""
    subtitle: str = ""
    bullets: list[str] = Field(default_factory=list)
    stats: list[Stat] = Field(default_factory=list)
    images: list[ImageRef] = Field(default_factory=list)
    focus_blocks: list[FocusBlock] = Field(default_factory=list)
    contact: ContactContent = Field(default_factory=ContactContent)


class HomeGallery(BaseModel):
    eyebrow: str = "Gallery"
    subtitle: str = ""
    images: list[ImageRef] = Field(default_factory=list)


class HomeNewsContent(BaseModel):
    eyebrow: str = "News"
    title: str = ""
    subtitle: str = ""
    view_all_label: str = "View all"
    gallery: HomeGallery = Field(default_factory=HomeGallery)
