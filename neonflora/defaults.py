"""Starter customization options for a fresh database."""

FONTS = [
    {"name": "Passionate", "class": "font-dancing-script", "font": "Dancing Script"},
    {"name": "Dreamy", "class": "font-great-vibes", "font": "Great Vibes"},
    {"name": "Flowy", "class": "font-parisienne", "font": "Parisienne"},
    {"name": "Original", "class": "font-fredoka", "font": "Fredoka"},
    {"name": "Classic", "class": "font-georgia", "font": "Georgia"},
    {"name": "Boujee", "class": "font-playfair", "font": "Playfair Display"},
    {"name": "Funky", "class": "font-righteous", "font": "Righteous"},
    {"name": "Chic", "class": "font-poppins", "font": "Poppins"},
    {"name": "Delight", "class": "font-comfortaa", "font": "Comfortaa"},
    {"name": "Classy", "class": "font-cormorant", "font": "Cormorant Garamond"},
    {"name": "Romantic", "class": "font-alex-brush", "font": "Alex Brush"},
    {"name": "Robo", "class": "font-orbitron", "font": "Orbitron"},
    {"name": "Charming", "class": "font-merienda", "font": "Merienda"},
    {"name": "Quirky", "class": "font-gloria-hallelujah", "font": "Gloria Hallelujah"},
    {"name": "Stylish", "class": "font-montserrat", "font": "Montserrat"},
    {"name": "Sassy", "class": "font-lobster", "font": "Lobster"},
    {"name": "Glam", "class": "font-aboreto", "font": "Aboreto"},
    {"name": "DOPE", "class": "font-anton", "font": "Anton"},
    {"name": "Chemistry", "class": "font-nunito", "font": "Nunito"},
    {"name": "Acoustic", "class": "font-patrick-hand", "font": "Patrick Hand"},
    {"name": "Sparky", "class": "font-bungee", "font": "Bungee"},
    {"name": "Vibey", "class": "font-rajdhani", "font": "Rajdhani"},
    {"name": "LoFi", "class": "font-share-tech-mono", "font": "Share Tech Mono"},
    {"name": "Bossy", "class": "font-bebas-neue", "font": "Bebas Neue"},
    {"name": "ICONIC", "class": "font-black-han-sans", "font": "Black Han Sans"},
    {"name": "Jolly", "class": "font-chewy", "font": "Chewy"},
    {"name": "MODERN", "class": "font-urbanist", "font": "Urbanist"},
]

SIZES = [
    {"value": "regular", "name": "Regular", "width": 3, "height": 10, "price": 299},
    {"value": "medium", "name": "Medium", "width": 4, "height": 10, "price": 399},
    {"value": "large", "name": "Large", "width": 5, "height": 10, "price": 499},
]

BACKGROUNDS = [
    {
        "id": "modern-living",
        "name": "Modern Living Room",
        "image": "https://plus.unsplash.com/premium_photo-1683133752824-b9fd877805f3?q=80&w=1974&auto=format&fit=crop",
    },
    {
        "id": "industrial",
        "name": "Industrial Space",
        "image": "https://plus.unsplash.com/premium_photo-1683133752824-b9fd877805f3?q=80&w=1974&auto=format&fit=crop",
    },
    {
        "id": "bedroom",
        "name": "Cozy Bedroom",
        "image": "https://plus.unsplash.com/premium_photo-1683141389818-77fd3485334b?q=80&w=2138&auto=format&fit=crop",
    },
    {
        "id": "cafe",
        "name": "Cafe Wall",
        "image": "https://plus.unsplash.com/premium_photo-1683141389818-77fd3485334b?q=80&w=2138&auto=format&fit=crop",
    },
    {
        "id": "brick",
        "name": "Brick Wall",
        "image": "https://source.unsplash.com/featured/?brick,wall",
    },
]

SHAPE_OPTIONS = [
    {"id": "cut-to-shape", "name": "Cut to Shape", "icon": "✂️", "price": 0},
    {"id": "rectangle", "name": "Rectangle Box", "icon": "⬜", "price": 800},
]

USAGE_OPTIONS = [
    {"id": "indoor", "name": "Indoor", "icon": "🏠", "price": 0},
    {"id": "outdoor", "name": "Outdoor", "icon": "🌳", "price": 1500},
]

STAR_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24" width="48" height="48" fill="currentColor">'
    '<path d="M12 2l3.09 6.26L22 9.27l-5 4.87 1.18 6.88L12 17.77l-6.18 3.25L7 14.14 2 9.27l6.91-1.01L12 2z"/>'
    "</svg>"
)
HEART_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24" width="48" height="48" fill="currentColor">'
    '<path d="M12 21.35l-1.45-1.32C5.4 15.36 2 12.28 2 8.5 2 5.42 4.42 3 7.5 3c1.74 0 3.41.81 4.5 2.09'
    "C13.09 3.81 14.76 3 16.5 3 19.58 3 22 5.42 22 8.5c0 3.78-3.4 6.86-8.55 11.54L12 21.35z\"/>"
    "</svg>"
)
FLOWER_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 100 100" width="48" height="48" fill="currentColor">'
    '<circle cx="50" cy="24" r="18"/><circle cx="76" cy="50" r="18"/>'
    '<circle cx="50" cy="76" r="18"/><circle cx="24" cy="50" r="18"/>'
    '<circle cx="50" cy="50" r="12" fill="#fff"/>'
    "</svg>"
)

DEFAULT_FLORO_OPTIONS = {
    "productType": "floro",
    "colors": [
        {"name": "Electric lime", "value": "#00ffff", "class": "from-cyan-400"},
        {"name": "Hot pink", "value": "#ff00ff", "class": "from-pink-500"},
        {"name": "Neon Green", "value": "#39ff14", "class": "from-green-400"},
        {"name": "lime Haze", "value": "#b026ff", "class": "from-lime-500"},
        {"name": "Fire Red", "value": "#ff0000", "class": "from-red-500"},
        {"name": "Golden Sun", "value": "#ffd700", "class": "from-yellow-400"},
        {"name": "Rainbow Mode", "value": "rainbow", "class": "from-white"},
    ],
    "sizes": SIZES,
    "fonts": FONTS,
    "addOns": [
        {"id": "flowers", "name": "Flowers", "icon": "🌸", "price": 500, "svg": FLOWER_SVG},
        {"id": "stars", "name": "Stars", "icon": "⭐", "price": 500, "svg": STAR_SVG},
        {"id": "hearts", "name": "Hearts", "icon": "❤️", "price": 500, "svg": HEART_SVG},
    ],
    "backgrounds": BACKGROUNDS,
    "dimmerOptions": [
        {"id": None, "name": "No Dimmer", "icon": "❌"},
        {"id": "dimmer", "name": "Add Dimmer", "icon": "🎛️", "price": 800},
    ],
    "shapeOptions": SHAPE_OPTIONS,
    "usageOptions": USAGE_OPTIONS,
}

DEFAULT_NEON_OPTIONS = {
    "productType": "neon",
    "colors": [
        {"name": "Pink", "value": "#ff69b4"},
        {"name": "Gold", "value": "#ffd700"},
        {"name": "Purple", "value": "#9370db"},
        {"name": "Teal", "value": "#00ced1"},
        {"name": "Orange", "value": "#ff7f50"},
        {"name": "Lime", "value": "#32cd32"},
        {"name": "Rainbow", "value": "rainbow"},
    ],
    "sizes": SIZES,
    "fonts": FONTS,
    "addOns": [
        {"id": "crown", "name": "Crown", "icon": "👑", "price": 500, "image": "/crown.jpg"},
        {"id": "heart", "name": "Heart", "icon": "❤️", "price": 500, "image": "/heart.jpg"},
        {"id": "butterfly", "name": "Butterfly", "icon": "🦋", "price": 500, "image": "/butterfly.jpg"},
    ],
    "backgrounds": BACKGROUNDS,
    "dimmerOptions": [
        {"id": False, "name": "No", "icon": "❌"},
        {"id": True, "name": "Yes", "icon": "✅", "price": 800},
    ],
    "shapeOptions": SHAPE_OPTIONS,
    "usageOptions": USAGE_OPTIONS,
}

DEFAULT_CUSTOMIZATION_OPTIONS = [DEFAULT_FLORO_OPTIONS, DEFAULT_NEON_OPTIONS]
