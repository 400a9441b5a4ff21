"""
RFM Customer Segmentation

Batch pipeline that scores ShopX customers by Recency, Frequency and
Monetary value and publishes the result as the ``rfm`` table.
"""

__version__ = "1.0.0"
