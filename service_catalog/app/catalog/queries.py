"""
SQL templates for catalog reads.

All queries are parameterized; values are never interpolated into the text.
"""

PRODUCT_COLUMNS = "id, index, name, category, brand, price, image_url, stock, internal_id"

LIST_PRODUCTS = f"""
    SELECT {PRODUCT_COLUMNS}
    FROM products
    ORDER BY index ASC
    LIMIT $1 OFFSET $2
"""

COUNT_PRODUCTS = "SELECT COUNT(*) AS total FROM products"

PRODUCT_DETAIL_COLUMNS = (
    "id, index, name, description, price, image_url, stock, brand, category, currency, "
    "ean, color, size, availability, short_description, internal_id"
)

GET_PRODUCT = f"SELECT {PRODUCT_DETAIL_COLUMNS} FROM products WHERE index = $1"

LATEST_PRODUCTS = f"""
    SELECT {PRODUCT_COLUMNS}
    FROM products
    ORDER BY index DESC
    LIMIT $1 OFFSET $2
"""

# $1 is the raw term for full-text matching, $2 the escaped ILIKE pattern.
SEARCH_PRODUCTS = f"""
    SELECT {PRODUCT_COLUMNS},
           ts_rank(search_vector, plainto_tsquery('english', $1))
             + similarity(name, $1) AS relevance
    FROM products
    WHERE search_vector @@ plainto_tsquery('english', $1)
       OR name ILIKE $2
    ORDER BY relevance DESC, name ASC, id ASC
    LIMIT $3 OFFSET $4
"""

COUNT_SEARCH = """
    SELECT COUNT(*) AS total
    FROM products
    WHERE search_vector @@ plainto_tsquery('english', $1)
       OR name ILIKE $2
"""

PRODUCTS_BY_CATEGORY = f"""
    SELECT {PRODUCT_COLUMNS}
    FROM products
    WHERE LOWER(category) = LOWER($1)
    ORDER BY index ASC
    LIMIT $2
"""

RANDOM_FILL = f"""
    SELECT {PRODUCT_COLUMNS}
    FROM products
    WHERE (category IS NULL OR LOWER(category) <> LOWER($1))
      AND id <> ALL($2::int[])
    ORDER BY RANDOM()
    LIMIT $3
"""

LIST_CATEGORIES = "SELECT id, name, created_at FROM categories ORDER BY name ASC"

CATALOG_STATISTICS = """
    SELECT
        (SELECT COUNT(*) FROM products) AS total_products,
        (SELECT COUNT(DISTINCT brand) FROM products) AS unique_brands,
        (SELECT COUNT(DISTINCT category) FROM products) AS unique_categories,
        (SELECT ROUND(AVG(price)::numeric, 2) FROM products) AS average_price,
        (SELECT MIN(price) FROM products) AS price_min,
        (SELECT MAX(price) FROM products) AS price_max,
        (SELECT COUNT(*) FROM products WHERE LOWER(availability) = 'in_stock') AS in_stock_count,
        (SELECT COUNT(*) FROM products WHERE LOWER(availability) = 'limited_stock') AS limited_stock_count,
        (SELECT COUNT(*) FROM products WHERE LOWER(availability) = 'out_of_stock') AS out_of_stock_count
"""
