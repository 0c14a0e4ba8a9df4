"""Invoice calculation core: line totals, PPN, invoice totals and terbilang"""

from .line_items import calculate_line_total, validate_line_item
from .vat import calculate_vat, calculate_vat_with_details, get_vat_breakdown, validate_vat
from .invoice import calculate_subtotal, calculate_invoice_totals, validate_invoice_totals
from .terbilang import number_to_words, amount_to_words, amount_to_words_with_sen, validate_number

__all__ = [
    'calculate_line_total',
    'validate_line_item',
    'calculate_vat',
    'calculate_vat_with_details',
    'get_vat_breakdown',
    'validate_vat',
    'calculate_subtotal',
    'calculate_invoice_totals',
    'validate_invoice_totals',
    'number_to_words',
    'amount_to_words',
    'amount_to_words_with_sen',
    'validate_number',
]
