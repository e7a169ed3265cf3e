"""Journal texts shared by the tests.

``JOURNAL`` line map (1-based): Coffee Shop header 1, its checking posting 3;
Paycheck (cleared) header 5; Grocery Store header 9, checking posting 11.
"""

JOURNAL = """\
2024/01/05 (1042) Coffee Shop
    Expenses:Dining          $4.50
    Assets:Checking          $-4.50

2024/01/07 * Paycheck
    Assets:Checking          $1000.00
    Income:Salary            $-1000.00

2024/01/09 Grocery Store
    Expenses:Food            $45.00
    Assets:Checking          $-45.00
"""

# Two accounts in one file, for switching the account of a live session.
SAVINGS_JOURNAL = """\
2024/02/01 Transfer
    Assets:Savings           $200.00
    Assets:Checking          $-200.00
"""
