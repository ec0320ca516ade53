from ..core import ElementDefinition

# Every anchor counts, with or without an href.
DEFINITION = ElementDefinition(
    tag_names=["a"],
    category="links"
)
