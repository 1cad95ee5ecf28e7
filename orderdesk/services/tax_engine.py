"""
GST calculation for India.

Intra-state supplies split the tax equally into CGST and SGST, inter-state
supplies carry the full amount as IGST. Laminates (HSN 4823) are taxed at
18 %, which is the default rate everywhere below.
"""
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

DEFAULT_GST_RATE = 18

INTRA_STATE = 'INTRA_STATE'
INTER_STATE = 'INTER_STATE'

TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')

# GST state codes. 25 and 28 were reassigned and intentionally have no entry.
STATE_CODES = {
    '01': 'Jammu & Kashmir',
    '02': 'Himachal Pradesh',
    '03': 'Punjab',
    '04': 'Chandigarh',
    '05': 'Uttarakhand',
    '06': 'Haryana',
    '07': 'Delhi',
    '08': 'Rajasthan',
    '09': 'Uttar Pradesh',
    '10': 'Bihar',
    '11': 'Sikkim',
    '12': 'Arunachal Pradesh',
    '13': 'Nagaland',
    '14': 'Manipur',
    '15': 'Mizoram',
    '16': 'Tripura',
    '17': 'Meghalaya',
    '18': 'Assam',
    '19': 'West Bengal',
    '20': 'Jharkhand',
    '21': 'Odisha',
    '22': 'Chhattisgarh',
    '23': 'Madhya Pradesh',
    '24': 'Gujarat',
    '26': 'Dadra & Nagar Haveli and Daman & Diu',
    '27': 'Maharashtra',
    '29': 'Karnataka',
    '30': 'Goa',
    '31': 'Lakshadweep',
    '32': 'Kerala',
    '33': 'Tamil Nadu',
    '34': 'Puducherry',
    '35': 'Andaman & Nicobar Islands',
    '36': 'Telangana',
    '37': 'Andhra Pradesh',
    '38': 'Ladakh',
}

GSTIN_PATTERN = re.compile(r'^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$')


@dataclass(frozen=True)
class GSTBreakdown:
    subtotal: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total_tax: Decimal
    total_amount: Decimal
    gst_type: str

    def to_dict(self):
        return {
            'subtotal': f"{self.subtotal:.2f}",
            'cgst': f"{self.cgst:.2f}",
            'sgst': f"{self.sgst:.2f}",
            'igst': f"{self.igst:.2f}",
            'totalTax': f"{self.total_tax:.2f}",
            'totalAmount': f"{self.total_amount:.2f}",
            'gstType': self.gst_type,
        }

    def __add__(self, other):
        gst_type = self.gst_type if self.gst_type == other.gst_type else INTER_STATE
        return GSTBreakdown(
            subtotal=self.subtotal + other.subtotal,
            cgst=self.cgst + other.cgst,
            sgst=self.sgst + other.sgst,
            igst=self.igst + other.igst,
            total_tax=self.total_tax + other.total_tax,
            total_amount=self.total_amount + other.total_amount,
            gst_type=gst_type,
        )


@dataclass(frozen=True)
class ItemTax:
    subtotal: Decimal
    tax_amount: Decimal
    total_price: Decimal


def to_decimal(value):
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal(0)
    # str() first so 0.1 becomes Decimal('0.1'), not its binary expansion
    return Decimal(str(value))


def round_to_two(value):
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def calculate_gst(subtotal, seller_state_code, buyer_state_code, gst_rate=DEFAULT_GST_RATE):
    """Split GST for ``subtotal`` depending on whether both parties share a state."""
    subtotal = round_to_two(subtotal)
    tax_amount = subtotal * to_decimal(gst_rate) / 100

    if seller_state_code == buyer_state_code:
        half_tax = round_to_two(tax_amount / 2)
        total_tax = half_tax * 2
        return GSTBreakdown(
            subtotal=subtotal,
            cgst=half_tax,
            sgst=half_tax,
            igst=ZERO,
            total_tax=total_tax,
            total_amount=subtotal + total_tax,
            gst_type=INTRA_STATE,
        )

    igst = round_to_two(tax_amount)
    return GSTBreakdown(
        subtotal=subtotal,
        cgst=ZERO,
        sgst=ZERO,
        igst=igst,
        total_tax=igst,
        total_amount=subtotal + igst,
        gst_type=INTER_STATE,
    )


def calculate_gst_by_rate(subtotals_by_rate, seller_state_code, buyer_state_code):
    """Apply ``calculate_gst`` to each ``{rate: subtotal}`` bucket and sum the results."""
    total = None
    for rate, subtotal in subtotals_by_rate.items():
        part = calculate_gst(subtotal, seller_state_code, buyer_state_code, rate)
        total = part if total is None else total + part
    if total is None:
        return calculate_gst(ZERO, seller_state_code, buyer_state_code)
    return total


def calculate_item_tax(quantity, unit_price, gst_rate=DEFAULT_GST_RATE):
    subtotal = to_decimal(quantity) * to_decimal(unit_price)
    tax_amount = subtotal * to_decimal(gst_rate) / 100
    return ItemTax(
        subtotal=round_to_two(subtotal),
        tax_amount=round_to_two(tax_amount),
        total_price=round_to_two(subtotal + tax_amount),
    )


def financial_year(when=None):
    """April-March financial year label, e.g. ``2024-25``."""
    when = when or date.today()
    start = when.year if when.month >= 4 else when.year - 1
    return f"{start}-{str(start + 1)[-2:]}"


def state_name(code):
    return STATE_CODES.get(code)


def state_code_from_gstin(gstin):
    if not gstin or len(gstin) < 2:
        return None
    code = gstin[:2]
    return code if code in STATE_CODES else None


def is_valid_gstin(gstin):
    if not gstin or len(gstin) != 15:
        return False
    return GSTIN_PATTERN.match(gstin) is not None


def format_inr(amount):
    """Format with Indian digit grouping: 123456.5 -> '₹1,23,456.50'."""
    amount = round_to_two(amount)
    sign = '-' if amount < 0 else ''
    rupees, paise = f"{abs(amount):.2f}".split('.')
    if len(rupees) > 3:
        head, tail = rupees[:-3], rupees[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        rupees = ','.join(groups + [tail])
    return f"{sign}₹{rupees}.{paise}"


_ONES = ['', 'One', 'Two', 'Three', 'Four', 'Five', 'Six', 'Seven', 'Eight', 'Nine',
         'Ten', 'Eleven', 'Twelve', 'Thirteen', 'Fourteen', 'Fifteen', 'Sixteen',
         'Seventeen', 'Eighteen', 'Nineteen']
_TENS = ['', '', 'Twenty', 'Thirty', 'Forty', 'Fifty', 'Sixty', 'Seventy', 'Eighty', 'Ninety']

# Indian scale: crore (10^7), lakh (10^5), thousand
_SCALES = [(10_000_000, 'Crore'), (100_000, 'Lakh'), (1000, 'Thousand')]


def number_to_words(num):
    num = int(num)
    if num == 0:
        return 'Zero'
    if num < 0:
        return 'Minus ' + number_to_words(-num)

    words = []
    for size, label in _SCALES:
        if num >= size:
            words.append(f"{number_to_words(num // size)} {label}")
            num %= size
    if num >= 100:
        words.append(f"{_ONES[num // 100]} Hundred")
        num %= 100
    if num:
        if num < 20:
            words.append(_ONES[num])
        else:
            words.append(_TENS[num // 10] + (f" {_ONES[num % 10]}" if num % 10 else ''))
    return ' '.join(words)


def amount_in_words(amount):
    amount = round_to_two(amount)
    rupees = int(amount)
    paise = int((amount - rupees) * 100)

    result = 'Rupees ' + number_to_words(rupees)
    if paise > 0:
        result += ' and ' + number_to_words(paise) + ' Paise'
    return result + ' Only'
