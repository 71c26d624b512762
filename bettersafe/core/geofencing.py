import math
from typing import List, Dict, Any, Optional
from bettersafe.config import settings

def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points using Haversine formula
    Returns distance in kilometers
    """
    R = 6371  # Earth's radius in kilometers

    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat/2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon/2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c

def is_within_campus(latitude: float, longitude: float) -> bool:
    """Check if coordinates are within the campus radius around The Yard"""
    distance_from_center = calculate_distance(
        latitude, longitude,
        settings.CAMPUS_CENTER_LAT, settings.CAMPUS_CENTER_LNG
    )
    return distance_from_center <= settings.CAMPUS_RADIUS_KM

LANDMARK_CATEGORIES = ["academic", "dining", "safety", "residential"]

# Howard University landmarks and points of interest used as map pins
HOWARD_LANDMARKS: List[Dict[str, Any]] = [
    # Academic
    {
        "id": "founders-library", "name": "Founders Library", "category": "academic",
        "lat": 38.92236, "lng": -77.01965,
        "description": "Historic library and iconic landmark of Howard University.",
        "details": {
            "hours": "Mon-Thu: 7:30am-Midnight, Fri: 7:30am-8pm, Sat: 9am-8pm, Sun: 10am-Midnight",
            "address": "500 Howard Place NW, Washington, DC 20059",
        },
    },
    {
        "id": "blackburn-center", "name": "Blackburn University Center", "category": "academic",
        "lat": 38.92399, "lng": -77.01905,
        "description": "Student center featuring dining, meeting spaces, and student services.",
        "details": {"address": "2397 6th Street NW, Washington, DC 20011"},
    },
    {
        "id": "chemistry-building", "name": "Chemistry Building", "category": "academic",
        "lat": 38.92152, "lng": -77.02023,
        "description": "Science and research facility for chemistry programs.",
    },
    {
        "id": "ee-just-hall", "name": "E.E. Just Hall (Biology Building)", "category": "academic",
        "lat": 38.92160, "lng": -77.01928,
        "description": "Houses biology and life sciences programs.",
    },
    {
        "id": "cramton-auditorium", "name": "Cramton Auditorium", "category": "academic",
        "lat": 38.92450, "lng": -77.02096,
        "description": "Major venue for lectures, concerts, and university events.",
    },
    {
        "id": "alain-locke-hall", "name": "Alain Locke Hall", "category": "academic",
        "lat": 38.92380, "lng": -77.01880,
        "description": "Academic building named after the philosopher and educator.",
    },
    {
        "id": "chadwick-boseman-college", "name": "Chadwick A. Boseman College of Fine Arts",
        "category": "academic",
        "lat": 38.92510, "lng": -77.01950,
        "description": "Home to theatre, music, and visual arts programs.",
    },
    # Dining
    {
        "id": "blackburn-cafe", "name": "Blackburn Café", "category": "dining",
        "lat": 38.92399, "lng": -77.01905,
        "description": "Main all-you-care-to-eat dining facility.",
        "details": {"hours": "Mon-Fri: 7am-7pm, Sat-Sun: 10am-6pm", "phone": "202-806-5400"},
    },
    {
        "id": "bethune-annex-cafe", "name": "Bethune Annex Café", "category": "dining",
        "lat": 38.91900, "lng": -77.02100,
        "description": "Secondary dining facility near the Bethune residential area.",
        "details": {"hours": "Mon-Fri: 7am-6pm, Sat-Sun: 10am-4pm", "phone": "202-806-5400"},
    },
    {
        "id": "the-punchout", "name": "The Punchout", "category": "dining",
        "lat": 38.92250, "lng": -77.01850,
        "description": "Quick-service grab-and-go dining.",
        "details": {"hours": "Mon-Fri: 8am-5pm, Sat-Sun: Closed", "phone": "202-806-5400"},
    },
    # Safety
    {
        "id": "campus-police-main", "name": "Campus Police - Main Station", "category": "safety",
        "lat": 38.92300, "lng": -77.02350,
        "description": "24/7 campus police providing security and emergency response.",
        "details": {"phone": "(202) 806-4357 (Emergency: 911)"},
    },
    {
        "id": "blue-light-phone-1", "name": "Blue Light Emergency Phone - The Yard", "category": "safety",
        "lat": 38.92300, "lng": -77.01950,
        "description": "Emergency call box connected to the Security Operations Center 24/7.",
    },
    {
        "id": "blue-light-phone-2", "name": "Blue Light Emergency Phone - Georgia Ave", "category": "safety",
        "lat": 38.92150, "lng": -77.02200,
        "description": "Emergency call box near the Georgia Avenue corridor.",
    },
    {
        "id": "blue-light-phone-3", "name": "Blue Light Emergency Phone - Dorm Complex", "category": "safety",
        "lat": 38.91900, "lng": -77.02100,
        "description": "Emergency call box in the residential area near dormitories.",
    },
    {
        "id": "security-escort-service", "name": "Campus Security Escort Service", "category": "safety",
        "lat": 38.92300, "lng": -77.02350,
        "description": "Safe escort service available 24/7 for students walking across campus.",
    },
    # Residential
    {
        "id": "drew-hall", "name": "Drew Hall", "category": "residential",
        "lat": 38.92450, "lng": -77.02200,
        "description": "Historic residence hall.",
    },
    {
        "id": "carver-hall", "name": "Carver Hall", "category": "residential",
        "lat": 38.92350, "lng": -77.02100,
        "description": "Residence hall with residential life programs and community spaces.",
    },
    {
        "id": "tubman-quadrangle", "name": "Tubman Quadrangle", "category": "residential",
        "lat": 38.92100, "lng": -77.02000,
        "description": "Residential complex named after Harriet Tubman.",
    },
    {
        "id": "bethune-annex-dorm", "name": "Bethune Annex", "category": "residential",
        "lat": 38.91900, "lng": -77.02100,
        "description": "Residence hall with attached dining facility.",
    },
]

CAMPUSES = ["Main", "West", "East", "Beltsville", "Off Campus", "Hospital"]

BUILDING_CATEGORIES = [
    "Academic", "Residential", "Dining", "Administrative", "Athletic", "Medical",
    "Safety", "Parking", "Utility", "Research", "Library", "Other",
]

def categorize_building_name(name: str) -> str:
    """Categorize a building from keywords in its name"""
    lower = name.lower()

    if "hall" in lower and any(k in lower for k in ("residence", "annex", "residential", "towers", "apartments")):
        return "Residential"
    if "dormitory" in lower or "dorm" in lower:
        return "Residential"
    if any(k in lower for k in ("cafe", "dining", "cafeteria", "food", "kitchen")):
        return "Dining"
    if "library" in lower:
        return "Library"
    if any(k in lower for k in ("hospital", "health", "medical", "clinic", "pharmacy", "dental")):
        return "Medical"
    if any(k in lower for k in ("security", "police", "emergency")):
        return "Safety"
    if any(k in lower for k in ("stadium", "gymnasium", "gym", "athletic", "sports", "recreation")):
        return "Athletic"
    if any(k in lower for k in ("parking", "garage", "lot")):
        return "Parking"
    if any(k in lower for k in ("administration", "admin", "service center", "office", "center")):
        return "Administrative"
    if any(k in lower for k in ("power plant", "warehouse", "storage", "facility")):
        return "Utility"
    if any(k in lower for k in ("research", "laboratory", "lab")):
        return "Research"
    if any(k in lower for k in ("school", "college", "engineering", "science", "building", "hall")):
        return "Academic"
    return "Other"

def _building(building_id: str, name: str, campus: str, lat: float, lng: float,
              address: str, category: Optional[str] = None,
              phone: Optional[str] = None, aliases: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": building_id,
        "name": name,
        "campus": campus,
        "lat": lat,
        "lng": lng,
        "address": address,
        "category": category or categorize_building_name(name),
        "phone": phone,
        "aliases": aliases,
    }

HOWARD_BUILDINGS: List[Dict[str, Any]] = [
    # Beltsville
    _building("ARB-81", "Animal Research Building", "Beltsville", 39.059217, -76.879427,
              "7501 Muirkirk Road, Beltsville, MD", "Research"),
    _building("SB-84", "Security Building", "Beltsville", 39.059217, -76.879427,
              "7501 Muirkirk Road, Beltsville, MD", "Safety"),
    # East
    _building("ARP-301", "Arrupe House", "East", 38.939665, -76.985849,
              "1400 Shepherd St. NE", "Residential"),
    _building("Div-300", "Divinity, School of", "East", 38.939717, -76.984034,
              "1400 Shepherd St. NE", "Academic", aliases="School of Divinity and Mays Residence Hall"),
    # Hospital
    _building("DPC-71", "Data processing Center", "Hospital", 38.918167, -77.021992,
              "2121 Georgia Avenue, NW", "Utility"),
    # Main
    _building("ADM-1", "Administration Building", "Main", 38.92313, -77.021573,
              "2400 6th St., NW", "Administrative", aliases="Mordecai Johnson Administration Building"),
    _building("AN2-17", "Allied Health Sciences", "Main", 38.91967, -77.02001,
              "6th & Bryant St. NW", "Academic", aliases="Freedman's Annex II"),
    _building("HMB-3", "Architecture & Planning", "Main", 38.922089, -77.021493,
              "2366 6th Street, NW", "Academic", aliases="Howard Mackey Building"),
    _building("BA-62B", "Baldwin Hall", "Main", 38.921936, -77.017905,
              "2455 4th Street, NW", "Residential", aliases="Tubman Quadrangle"),
    _building("BX-6", "Bethune Hall Annex", "Main", 38.920672, -77.017513,
              "2225 4th Street, NW", "Residential", aliases="Mary McLeod Bethune Annex"),
    _building("EJH-7", "Biology Building", "Main", 38.921598, -77.019283,
              "415 College Street, NW", "Academic", aliases="E.E. Just Hall"),
    _building("BUC-57", "Blackburn University Center", "Main", 38.923987, -77.019047,
              "2397 6th St., NW", "Dining"),
    _building("BUR-8", "Burr Gymnasium", "Main", 38.926414, -77.022073,
              "6th & Girard ST NW", "Athletic", aliases="John Burr Gymnasium Building"),
    _building("CB4-10", "Business, School of", "Main", 38.924428, -77.021988,
              "2600 6th Street NW", "Academic", aliases="Class Room Building 4"),
    _building("CCTR-19", "Cancer Research Center", "Main", 38.917549, -77.020094,
              "2041 Georgia Avenue, NW", "Research"),
    _building("CAR-12", "Carnegie Building", "Main", 38.922863, -77.020754,
              "2395 6th Street, NW", "Academic"),
    _building("RAN-50", "Chapel, Rankin", "Main", 38.922174, -77.020592,
              "2365 6th Street, NW", "Academic", aliases="Andrew Rankin Memorial Chapel"),
    _building("CEM-15", "Chemistry Building", "Main", 38.921515, -77.020233,
              "525 College Street, NW", "Academic"),
    _building("CBP-13", "Communications, School of", "Main", 38.920707, -77.019404,
              "525 Bryant Street, NW", "Academic", aliases="C. B. Powell Building"),
    _building("CO-18", "Cook Hall", "Main", 38.925365, -77.021721,
              "601 Fairmont Street, NW", "Residential"),
    _building("CRA-20", "Cramton Auditorium", "Main", 38.924501, -77.020960,
              "2455 6th St., NW", "Academic"),
    _building("DEN-22", "Dentistry, College of", "Main", 38.918543, -77.020753,
              "600 W Street, NW", "Medical"),
    _building("DGH-23", "Douglass Hall", "Main", 38.923677, -77.020925,
              "2419 6th St., NW", "Academic"),
    _building("DR-21", "Drew Hall", "Main", 38.927328, -77.020917,
              "511 Gresham Place, NW", "Residential"),
    _building("LKD-26", "Engineering, Architecture & Computer Sciences, College of", "Main",
              38.921564, -77.021498, "2300 6th Street, NW", "Academic", aliases="Lewis K. Downing Hall"),
    _building("LVC-28", "Fine Arts", "Main", 38.924250, -77.020209,
              "2455 6th Street NW", "Academic", aliases="Lulu Vere Childers Hall"),
    _building("LIB-29", "Founder's Library", "Main", 38.922364, -77.019645,
              "500 Howard Place, NW", "Library"),
    _building("FR-62F", "Frazier Hall", "Main", 38.921569, -77.017674,
              "2455 4th Street, NW", "Residential", aliases="Tubman Quadrangle"),
    _building("GS-9", "Greene Stadium", "Main", 38.925509, -77.021051,
              "Greene Stadium", "Athletic"),
    _building("HSL-200", "Health Sciences Library", "Main", 38.919804, -77.018645,
              "501 W St., NW", "Library", phone="202-884-1522",
              aliases="Louis Stokes Health Sciences Library"),
    _building("HH-33", "Howard Hall", "Main", 38.922990, -77.021815,
              "607 Howard Place", "Academic", aliases="Oliver Otis Howard Hall"),
    _building("HPE-550", "Howard Plaza Towers East", "Main", 38.920283, -77.023473,
              "2251 Sherman Ave.", "Residential", aliases="Howard Plaza Towers"),
    _building("HPW-551", "Howard Plaza Towers West", "Main", 38.920200, -77.024556,
              "2251 Sherman Ave.", "Residential", aliases="Howard Plaza Towers"),
    _building("HCTR-5", "Howard University Center", "Main", 38.919877, -77.021710,
              "2225 Georgia Avenue, NW", "Administrative", aliases="Bookstore"),
    _building("HUH-67", "Howard University Hospital", "Main", 38.917500, -77.020490,
              "2041 Georgia Ave, NW", "Medical"),
    _building("HUSS-41", "HU Security Sub-station", "Main", 38.919123, -77.022125,
              "2200 Georgia Avenue, NW", "Safety"),
]

def get_landmarks_by_category(category: str) -> List[Dict[str, Any]]:
    """Get all landmarks of a specific category"""
    return [landmark for landmark in HOWARD_LANDMARKS if landmark["category"] == category]

def get_buildings(campus: Optional[str] = None, category: Optional[str] = None) -> List[Dict[str, Any]]:
    return [
        building for building in HOWARD_BUILDINGS
        if (campus is None or building["campus"] == campus)
        and (category is None or building["category"] == category)
    ]

def search_buildings(query: str) -> List[Dict[str, Any]]:
    """Search buildings by name or alias (case-insensitive)"""
    if not query.strip():
        return []
    lower_query = query.strip().lower()
    return [
        building for building in HOWARD_BUILDINGS
        if lower_query in building["name"].lower()
        or lower_query in (building["aliases"] or "").lower()
    ]

def get_nearest_landmark(latitude: float, longitude: float, max_distance: float = 1.0) -> str:
    """
    Get a human readable description of the nearest campus landmark
    Args:
        latitude: Current latitude
        longitude: Current longitude
        max_distance: Maximum distance in km to consider (default 1km)
    """
    min_distance = float('inf')
    nearest_name = None

    for landmark in HOWARD_LANDMARKS:
        distance = calculate_distance(latitude, longitude, landmark["lat"], landmark["lng"])
        if distance < min_distance and distance <= max_distance:
            min_distance = distance
            nearest_name = landmark["name"]

    if nearest_name is None:
        return "Off campus"

    meters = round(min_distance * 1000)
    if meters < 50:
        return f"At {nearest_name}"
    elif meters < 200:
        return f"Near {nearest_name}"
    return f"Close to {nearest_name} ({meters}m)"

def get_nearby_landmarks(latitude: float, longitude: float, radius: float = 0.5) -> List[Dict[str, Any]]:
    """
    Get all landmarks within specified radius
    Args:
        latitude: Center latitude
        longitude: Center longitude
        radius: Search radius in kilometers
    """
    nearby = []

    for landmark in HOWARD_LANDMARKS:
        distance = calculate_distance(latitude, longitude, landmark["lat"], landmark["lng"])
        if distance <= radius:
            nearby.append({**landmark, "distance": round(distance * 1000)})  # meters

    nearby.sort(key=lambda x: x["distance"])
    return nearby

def validate_coordinates(latitude: float, longitude: float) -> List[str]:
    """Return a list of coordinate errors (empty when valid)"""
    errors = []
    if not (-90 <= latitude <= 90):
        errors.append("Invalid latitude: must be between -90 and 90")
    if not (-180 <= longitude <= 180):
        errors.append("Invalid longitude: must be between -180 and 180")
    return errors
