import re
from enum import Enum


class ResolutionTier(Enum):
    HD = "高清"
    UHD4K = "4K"
    SD = "标清"
    OTHER = "其它"
    ERROR = "错误"

    @property
    def label(self):
        return self.value

    @property
    def tag(self):
        return f"[{self.value}]"


# Order matters: a name carrying several tags is judged by the first one found here.
TAGGED_TIERS = (ResolutionTier.HD, ResolutionTier.UHD4K, ResolutionTier.SD)
TAG_PATTERN = re.compile("|".join(re.escape(tier.tag) for tier in TAGGED_TIERS))


def classify_resolution(width, height):
    if width is None or height is None:
        return ResolutionTier.ERROR
    if width == 1920 and height == 1080:
        return ResolutionTier.HD
    # Some sources report 0x0 for their 4K feeds.
    if (width == 3840 and height == 2160) or (width == 0 and height == 0):
        return ResolutionTier.UHD4K
    if width == 720 and height in (576, 560):
        return ResolutionTier.SD
    return ResolutionTier.OTHER


def declared_tier(channel_name):
    for tier in TAGGED_TIERS:
        if tier.tag in channel_name:
            return tier
    return None


def find_mismatch(channel_name, actual_tier):
    """Return the tier the channel name claims when it disagrees with the
    measured one, otherwise None."""
    declared = declared_tier(channel_name)
    if declared is not None and declared != actual_tier:
        return declared
    return None


def rewrite_channel_name(channel_name, tier):
    # A name that already carried a tag is always re-tagged, even with [错误];
    # an untagged name is only tagged when the stream is usable.
    if TAG_PATTERN.search(channel_name):
        stripped = TAG_PATTERN.sub("", channel_name).strip()
        return f"{stripped}{tier.tag}"
    if tier is not ResolutionTier.ERROR:
        return f"{channel_name}{tier.tag}"
    return channel_name
