"""
GraphQL documents for the catalog Admin API.

Every paginated query takes ``$first: Int!`` and ``$after: String`` and exposes
``pageInfo { hasNextPage endCursor }`` on its connection so that it can be
driven by the Paginator. Media fragments always select ``__typename``; the
media models dispatch on it.
"""

MEDIA_FRAGMENTS = """
  __typename
  ... on MediaImage {
    id
    image {
      url
      altText
    }
  }
  ... on Video {
    id
    sources {
      url
    }
  }
  ... on ExternalVideo {
    id
    embeddedUrl
  }
  ... on Model3d {
    id
    sources {
      url
    }
  }
"""

METAFIELD_FIELDS = """
  namespace
  key
  value
  type
"""

MEDIA_LISTING_QUERY = f"""
query GetAllMedia($first: Int!, $after: String) {{
  files(first: $first, after: $after) {{
    pageInfo {{
      hasNextPage
      endCursor
    }}
    nodes {{
      {MEDIA_FRAGMENTS}
    }}
  }}
}}
"""

MEDIA_BY_ID_QUERY = f"""
query GetMediaById($id: ID!) {{
  node(id: $id) {{
    {MEDIA_FRAGMENTS}
  }}
}}
"""

_PRODUCT_IDENTITY = """
  id
  title
  handle
  descriptionHtml
  description
  productType
  tags
  vendor
  status
  templateSuffix
  seo {
    title
    description
  }
  options {
    id
    name
    values
  }
"""

_VARIANT_FIELDS = """
  id
  title
  image {
    altText
    url
  }
  sku
  price
  compareAtPrice
  inventoryQuantity
  availableForSale
  selectedOptions {
    name
    value
  }
"""

# Single-pass query: identity, metafields, variants, images and media in one page.
PRODUCTS_RICH_QUERY = f"""
query GetAllProducts($first: Int!, $after: String) {{
  products(first: $first, after: $after) {{
    pageInfo {{
      hasNextPage
      endCursor
    }}
    nodes {{
      {_PRODUCT_IDENTITY}
      metafields(first: 25) {{
        nodes {{
          {METAFIELD_FIELDS}
        }}
      }}
      variants(first: 100) {{
        nodes {{
          {_VARIANT_FIELDS}
          metafields(first: 15) {{
            nodes {{
              {METAFIELD_FIELDS}
            }}
          }}
        }}
      }}
      images(first: 30) {{
        nodes {{
          id
          url
          altText
        }}
      }}
      media(first: 30) {{
        nodes {{
          {MEDIA_FRAGMENTS}
        }}
      }}
    }}
  }}
}}
"""

# Two-phase, step (a): cheap enumeration without metafields or media.
PRODUCTS_BASIC_QUERY = f"""
query GetAllProductsBasic($first: Int!, $after: String) {{
  products(first: $first, after: $after) {{
    pageInfo {{
      hasNextPage
      endCursor
    }}
    nodes {{
      {_PRODUCT_IDENTITY}
      variants(first: 100) {{
        nodes {{
          {_VARIANT_FIELDS}
        }}
      }}
      images(first: 20) {{
        nodes {{
          id
          url
          altText
        }}
      }}
    }}
  }}
}}
"""

# Two-phase, step (b): one detail query per product.
PRODUCT_DETAILS_QUERY = f"""
query GetProductDetails($id: ID!) {{
  product(id: $id) {{
    id
    metafields(first: 25) {{
      nodes {{
        {METAFIELD_FIELDS}
      }}
    }}
    variants(first: 100) {{
      nodes {{
        id
        metafields(first: 15) {{
          nodes {{
            {METAFIELD_FIELDS}
          }}
        }}
      }}
    }}
    media(first: 30) {{
      nodes {{
        {MEDIA_FRAGMENTS}
      }}
    }}
  }}
}}
"""

FILES_QUERY = """
query GetAllFiles($first: Int!, $after: String) {
  files(query: "references_count:>0", first: $first, after: $after) {
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      __typename
      id
      createdAt
      updatedAt
      fileStatus
      alt
      preview {
        image {
          url
        }
      }
      ... on MediaImage {
        image {
          url
        }
      }
      ... on GenericFile {
        url
      }
      ... on Video {
        originalSource {
          url
        }
      }
    }
  }
}
"""

PAGES_QUERY = """
query GetAllPages($first: Int!, $after: String) {
  pages(first: $first, after: $after) {
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      id
      title
      handle
      body
      bodySummary
      createdAt
      updatedAt
      onlineStoreUrl
      seo {
        title
        description
      }
      templateSuffix
    }
  }
}
"""

COLLECTIONS_QUERY = """
query GetAllCollections($first: Int!, $after: String) {
  collections(first: $first, after: $after) {
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      id
      handle
      title
      updatedAt
      descriptionHtml
      sortOrder
      templateSuffix
      ruleSet {
        appliedDisjunctively
        rules {
          column
          relation
          condition
        }
      }
      image {
        url
        altText
      }
    }
  }
}
"""

COLLECTION_PRODUCTS_QUERY = """
query GetCollectionProducts($id: ID!, $first: Int!, $after: String) {
  collection(id: $id) {
    id
    products(first: $first, after: $after) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        id
        title
        handle
      }
    }
  }
}
"""

METAOBJECTS_QUERY = """
query GetMetaobjects($type: String!, $first: Int!, $after: String) {
  metaobjects(type: $type, first: $first, after: $after) {
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      id
      handle
      type
      displayName
      updatedAt
      fields {
        key
        value
        type
        reference {
          ... on MediaImage {
            id
            image {
              url
            }
          }
          ... on Product {
            id
            title
            handle
          }
          ... on Collection {
            id
            title
            handle
          }
          ... on Metaobject {
            id
            type
            handle
          }
        }
      }
    }
  }
}
"""
