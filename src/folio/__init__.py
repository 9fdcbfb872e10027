"""folio: read, validate and list Markdown content documents.

Parses the metadata header of each content file in a static-site
content tree, checks it the way the site generator would, and builds
the published listing with its tags, categories and date order.
"""

from folio.errors import ContentNotFoundError, FolioError, FrontMatterError
from folio.frontmatter import (
    coerce_front_matter,
    parse_document,
    parse_header,
    render_document,
    serialize_header,
    split_document,
)
from folio.models import (
    CodeBlock,
    ContentDocument,
    FrontMatter,
    HeaderFormat,
    Link,
    Severity,
    Shortcode,
    SiteListing,
    TaxonomyTerm,
    ValidationIssue,
    ValidationOptions,
    ValidationReport,
)
from folio.services import (
    ContentReader,
    build_listing,
    new_document,
    normalize_document,
    slugify,
    taxonomy_slug,
)
from folio.validation import validate_corpus, validate_document

__version__ = "0.1.0"

__all__ = [
    "CodeBlock",
    "ContentDocument",
    "ContentNotFoundError",
    "ContentReader",
    "FolioError",
    "FrontMatter",
    "FrontMatterError",
    "HeaderFormat",
    "Link",
    "Severity",
    "Shortcode",
    "SiteListing",
    "TaxonomyTerm",
    "ValidationIssue",
    "ValidationOptions",
    "ValidationReport",
    "__version__",
    "build_listing",
    "coerce_front_matter",
    "new_document",
    "normalize_document",
    "parse_document",
    "parse_header",
    "render_document",
    "serialize_header",
    "slugify",
    "split_document",
    "taxonomy_slug",
    "validate_corpus",
    "validate_document",
]
