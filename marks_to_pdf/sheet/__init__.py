from .columns import InvalidColumnReference, column_to_index
from .reader import SheetError, ensure_columns_in_range, read_marks_file, split_max_marks_row

__all__ = [
    "InvalidColumnReference",
    "column_to_index",
    "SheetError",
    "ensure_columns_in_range",
    "read_marks_file",
    "split_max_marks_row",
]
