class BundleError(Exception):
    """Base class for every failure raised while building a bundle."""


class UnreadableDocumentError(BundleError):
    document_id: str
    details: str

    def __init__(self, document_id: str, name: str, details: str):
        self.document_id = document_id
        self.name = name
        self.details = details
        super().__init__(f"Could not read document '{name}' ({document_id}): {details}")


class InvalidPageSubsetError(BundleError):
    def __init__(self, document_id: str, selected_pages, page_count: int):
        self.document_id = document_id
        self.selected_pages = selected_pages
        self.page_count = page_count
        super().__init__(f"Invalid page selection {selected_pages} for document {document_id} with {page_count} pages")


class LabelCapacityError(BundleError):
    def __init__(self, prefix: str, number: int, width: int):
        self.prefix = prefix
        self.number = number
        self.width = width
        super().__init__(f"Label capacity exceeded: {prefix}{number} does not fit in {width} digits")


class LayoutConvergenceError(BundleError):
    def __init__(self, iterations: int, last_count: int):
        self.iterations = iterations
        self.last_count = last_count
        super().__init__(f"Index size did not settle after {iterations} iterations (last count {last_count})")


class AssemblyError(BundleError):
    details: str

    def __init__(self, option, details):
        self.details = details
        super().__init__(f"Assembly process failed: {option}")


class PipelineStateError(BundleError):
    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move pipeline from {getattr(current, 'name', 'START')} to {requested.name}")


class BundleCancelledError(BundleError):
    def __init__(self, message="Bundle generation was cancelled."):
        super().__init__(message)


class InvalidPageNumberError(BundleError):
    def __init__(self, prefix: str, number: int):
        self.prefix = prefix
        self.number = number
        super().__init__(f"Page numbers cannot be negative: {prefix}{number}")
