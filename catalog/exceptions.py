# catalog/exceptions.py

class CatalogException(Exception):
  """All catalog service errors"""
  pass

class AuthenticationError(CatalogException):
  """Authorization header missing or malformed"""
  pass

class ProductNotFoundError(CatalogException):
  """No product with the requested id"""
  def __init__(self, product_id: int):
    self.product_id = product_id
    super().__init__(f"Product {product_id} not found")


class ContentSourceException(CatalogException):
  """All content source (Contentful) errors"""
  pass

class ContentSourceConfigError(ContentSourceException):
  """Connection parameters missing from the environment"""
  pass

class ContentSourceTimeoutError(ContentSourceException):
  """Request timeout error raise"""
  pass

class ContentSourceConnectionError(ContentSourceException):
  """Connection error raise"""

class ContentSourceHTTPError(ContentSourceException):
  """HTTP statuse code 400-499 or 500-599 raise"""
  def __init__(self, status_code: int, message: str = None):
    self.status_code = status_code
    self.message = message or f"HTTP error {status_code}"
    super().__init__(self.message)

class ContentMappingError(ContentSourceException):
  """Entry payload cannot be mapped to a product"""
  pass
