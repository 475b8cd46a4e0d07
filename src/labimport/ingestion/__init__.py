"""
Archive import pipeline: manifest reading, attachment resolution, record
import, tag ingestion and the session orchestrating them.
"""
