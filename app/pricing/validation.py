"""Duplicate-value guard and pre-save validation for product options."""


class ProductValidationError(ValueError):
    """Raised when a product cannot be saved as submitted.

    ``errors`` is a list of human-readable messages; ``duplicates`` maps a
    dimension name to the indices flagged in that dimension.
    """

    def __init__(self, errors, duplicates=None):
        super().__init__("; ".join(errors))
        self.errors = list(errors)
        self.duplicates = duplicates or {}

    def to_dict(self):
        return {
            "errors": self.errors,
            "duplicates": {k: sorted(v) for k, v in self.duplicates.items()},
        }


def find_duplicates(options):
    """Indices whose value repeats an earlier non-blank value.

    The first occurrence is never flagged.
    """
    seen = set()
    flagged = set()
    for index, option in enumerate(options):
        value = (option.value or "").strip()
        if not value:
            continue
        if value in seen:
            flagged.add(index)
        else:
            seen.add(value)
    return flagged


def duplicate_report(product):
    """Flagged indices per option dimension, for highlighting in the editor."""
    return {
        "length": find_duplicates(product.length_options),
        "lace": find_duplicates(product.lace_size_options),
        "density": find_duplicates(product.density_options),
    }


def validate_for_save(product, length_options_enabled=True):
    """Raise ``ProductValidationError`` unless ``product`` may be persisted."""
    errors = []
    report = duplicate_report(product)
    duplicates = {dim: idx for dim, idx in report.items() if idx}
    for dimension, indices in duplicates.items():
        errors.append(
            f"Duplicate {dimension} values at positions "
            + ", ".join(str(i + 1) for i in sorted(indices))
        )

    if length_options_enabled and product.length_options:
        if not any(o.value and o.price > 0 for o in product.length_options):
            errors.append("At least one length option needs a value and a price")
    elif product.price <= 0:
        errors.append("A valid base price is required")

    if not 0 <= product.rating <= 5:
        errors.append("Rating must be between 0 and 5")

    if errors:
        raise ProductValidationError(errors, duplicates)
