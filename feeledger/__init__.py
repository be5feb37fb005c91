"""
FeeLedger API: school fee payments, bank notification sync and receipting.
"""
