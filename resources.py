"""
Presentation layer: locale-resolved representations of content.

Every translatable field is resolved through the injected
``TranslationResolver`` before it is placed in a response body.
"""

from typing import Any, Dict, List, Optional

from translation import TranslationResolver


def author_resource(author) -> Optional[Dict[str, Any]]:
    if author is None:
        return None
    return {
        'id': author.id,
        'name': author.name,
        'email': author.email,
        'url': author.url,
    }


def category_resource(category, resolver: TranslationResolver, locale: str) -> Dict[str, Any]:
    return {
        'id': category.id,
        'slug': category.slug,
        'name': resolver.resolve(category.name, locale),
        'description': resolver.resolve(category.description, locale),
        'seo': {
            'meta_title': resolver.resolve(category.meta_title, locale),
            'meta_description': resolver.resolve(category.meta_description, locale),
            'schema_json': category.schema_json,
        },
        'parent_id': category.parent_id,
    }


def category_tree_resource(category, resolver: TranslationResolver, locale: str) -> Dict[str, Any]:
    result = category_resource(category, resolver, locale)
    children = sorted(category.children, key=lambda child: (child.display_order or 0, child.slug))
    result['children'] = [category_tree_resource(child, resolver, locale) for child in children]
    return result


def tag_resource(tag, resolver: TranslationResolver, locale: str) -> Dict[str, Any]:
    return {
        'id': tag.id,
        'name': resolver.resolve(tag.name, locale),
        'slug': tag.slug,
        'color': tag.color,
    }


def content_item_resource(item, resolver: TranslationResolver, locale: str,
                          is_live: bool = False) -> Dict[str, Any]:
    """Convert a content item to its public, single-locale representation."""
    return {
        'id': item.id,
        'slug': item.slug,
        'locale': locale,
        'title': resolver.resolve(item.title, locale),
        'description': resolver.resolve(item.description, locale),
        'content': resolver.resolve(item.content, locale),
        'excerpt': resolver.resolve(item.excerpt, locale),
        'featured_image_url': item.featured_image_url,
        'og_image': item.og_image,
        'author': author_resource(item.author),
        'categories': [category_resource(category, resolver, locale) for category in item.categories],
        'tags': [tag_resource(tag, resolver, locale) for tag in item.tags],
        'seo': {
            'meta_title': resolver.resolve(item.meta_title, locale),
            'meta_description': resolver.resolve(item.meta_description, locale),
            'canonical_url': item.canonical_url,
            'schema_json': item.schema_json,
            'seo_score': item.seo_score,
        },
        'metrics': {
            'view_count': item.view_count,
            'reading_time_minutes': item.reading_time_minutes,
        },
        'status': {
            'value': item.status.value if item.status else None,
            'is_published': is_live,
            'published_at': item.published_at.isoformat() if item.published_at else None,
            'created_at': item.created_at.isoformat() if item.created_at else None,
            'updated_at': item.updated_at.isoformat() if item.updated_at else None,
        },
        'regions': sorted(item.regions),
    }


def collection_envelope(data: List[Dict[str, Any]], **meta) -> Dict[str, Any]:
    return {'data': data, 'meta': meta}

